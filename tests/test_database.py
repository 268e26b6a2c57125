from neuroplan.database_manager import DatabaseManager


def test_init_idempotent(db: DatabaseManager):
    # Second call should not raise and should not duplicate migrations
    db.init_db()
    rows = db.query_all("SELECT COUNT(*) as c FROM schema_migrations")
    assert rows[0]["c"] == 3


def test_foreign_keys_enabled(db: DatabaseManager):
    row = db.query_one("PRAGMA foreign_keys")
    assert row[0] == 1
