from lakerunner.lrdb.db import (
    DBTX,
    Batch,
    NoRowsError,
    Pool,
    QueriesBase,
    Transaction,
)
from lakerunner.lrdb.log_seg import LogSegQueries


class FakeDB:
    def exec(self, sql, *args):
        return "OK"

    def query(self, sql, *args):
        return []

    def query_row(self, sql, *args):
        raise NoRowsError("no rows in result set")

    def send_batch(self, batch):
        return None


class FakeTx(FakeDB):
    def commit(self):
        pass

    def rollback(self):
        pass


class FakePool(FakeDB):
    def begin(self):
        return FakeTx()


def test_batch_queue_records_statements_in_order():
    batch = Batch()
    batch.queue("SELECT 1")
    batch.queue("SELECT $1, $2", 1, "two")
    assert len(batch) == 2
    assert list(batch) == [("SELECT 1", ()), ("SELECT $1, $2", (1, "two"))]


def test_empty_batch():
    assert len(Batch()) == 0
    assert list(Batch()) == []


def test_with_tx_returns_new_queries_on_tx():
    db = FakeDB()
    tx = FakeTx()
    queries = QueriesBase(db)
    tx_queries = queries.with_tx(tx)
    assert tx_queries.db is tx
    assert queries.db is db
    assert tx_queries is not queries


def test_with_tx_preserves_subclass():
    tx = FakeTx()
    original = LogSegQueries(FakeDB())
    result = original.with_tx(tx)
    assert type(result) is LogSegQueries
    assert result.db is tx
    assert original.db is not tx


def test_no_rows_error_is_lookup_error():
    error = NoRowsError("no rows in result set")
    assert isinstance(error, LookupError)
    assert str(error) == "no rows in result set"


def test_with_tx_from_pool_begin():
    pool = FakePool()
    base = QueriesBase(pool)
    tx = pool.begin()
    queries = base.with_tx(tx)
    assert queries.db is tx
    assert base.db is pool
    assert isinstance(pool, Pool)
    assert isinstance(queries.db, Transaction)
    assert isinstance(queries.db, DBTX)
    assert not isinstance(QueriesBase(FakeDB()).db, Transaction)