import unittest

from sheetboard.board_config import ConfigService
from sheetboard.cache import PostCache
from sheetboard.locks import LocalLock
from sheetboard.posts import PostService
from sheetboard.settings_store import SqlSettingsStore
from sheetboard.table import HEADER, SheetRow, SqlPostTable, create_sql_sessionmaker


class SqlBackendTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL row table.
    """

    def setUp(self):
        session_factory = create_sql_sessionmaker("sqlite+pysqlite:///:memory:")
        self.table = SqlPostTable(session_factory, "Posts")
        self.store = SqlSettingsStore(session_factory, "Settings")
        self.table.ensure_header()
        self.store.ensure_defaults("9999", "bbs_files", 5)

    def test_header_is_written_once(self):
        self.table.ensure_header()
        with self.table.Session() as session:
            header = session.get(SheetRow, ("Posts", 1))
            self.assertEqual(header.cells, HEADER)
        self.assertEqual(self.table.read_rows(), [])

    def test_append_and_write_cells(self):
        self.table.append_row([1, "a", "b", "t1", "t1", 1])
        self.table.append_row([2, "c", "d", "t2", "t2", 1])
        self.table.write_cells(3, 6, [0])
        self.table.write_cells(2, 2, ["A", "B"])

        self.assertEqual(
            self.table.read_rows(),
            [[1, "A", "B", "t1", "t1", 1], [2, "c", "d", "t2", "t2", 0]],
        )
        self.assertEqual(self.table.read_ids(), [1, 2])

    def test_settings_roundtrip(self):
        config = self.store.read()
        self.assertEqual(
            (config.password, config.folder_name, config.page_size),
            ("9999", "bbs_files", 5),
        )
        self.store.write_page_size(20)
        self.assertEqual(self.store.read().page_size, 20)

    def test_post_service_over_sql(self):
        lock = LocalLock()
        cache = PostCache()
        config = ConfigService(self.store, lock, cache)
        posts = PostService(self.table, config, cache, lock)

        for i in range(3):
            posts.create_post(f"t{i}", "x", "9999")
        posts.delete_post(2, "9999")
        posts.update_post(3, "renamed", "y", "9999")

        page = posts.list_posts()
        self.assertEqual([(p.id, p.name) for p in page.posts], [(3, "renamed"), (1, "t0")])
        self.assertEqual(len(self.table.read_rows()), 3)


if __name__ == "__main__":
    unittest.main()
