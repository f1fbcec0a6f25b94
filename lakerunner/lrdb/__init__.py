"""Typed queries and transactional operations on the metadata database."""