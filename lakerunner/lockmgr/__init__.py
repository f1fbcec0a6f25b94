"""Claiming, heartbeating and finishing work-queue items."""