"""End-to-end tests for RepositoryBase against a file-backed SQLite database."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from dbcommon.command import Command
from dbcommon.context import DatabaseContext, set_default_context
from dbcommon.errors import NotSupportedError
from dbcommon.pagination import Order, PaginationFilter, RowNumPaginator
from dbcommon.pipeline import CommandPipeline
from dbcommon.repository import RepositoryBase
from dbcommon.rows import RowReader
from dbcommon.settings import ConnectionConfig

pytestmark = pytest.mark.integration


class Status(Enum):
    ACTIVE = "ACTIVE"
    RETIRED = "RETIRED"


@dataclass
class Product:
    id: int
    name: str
    price: float
    status: Status | None


def to_product(row: RowReader) -> Product:
    return Product(
        id=row.get("id", int, 0),
        name=row.get("name", str, ""),
        price=row.get("price", float, 0.0),
        status=row.get("status", Status),
    )


class ProductRepository(RepositoryBase):
    def all(self, page: PaginationFilter | None = None) -> list[Product]:
        return self.select_all(to_product, "SELECT * FROM products", page_filter=page)

    def by_category(self, category: str) -> list[Product]:
        return self.select_all(to_product, "SELECT * FROM products WHERE category = {0} ORDER BY id", category)

    def by_id(self, product_id: int) -> Product | None:
        return self.select(to_product, "SELECT * FROM products WHERE id = {0}", product_id)

    def count(self) -> int:
        return self.scalar(int, "SELECT COUNT(*) FROM products", default=0)

    def reprice(self, product_id: int, price: float) -> bool:
        return self.execute("UPDATE products SET price = {0} WHERE id = {1}", price, product_id)


@pytest.fixture
def repo(sqlite_context: DatabaseContext) -> ProductRepository:
    return ProductRepository(context=sqlite_context)


class TestQueries:
    def test_select_all_projects_every_row(self, repo: ProductRepository) -> None:
        products = repo.all()
        assert [p.name for p in products] == ["anvil", "bolt", "crate", "drill", "easel", "funnel", "gauge"]

    def test_enum_columns(self, repo: ProductRepository) -> None:
        by_id = {p.id: p.status for p in repo.all()}
        assert by_id[1] is Status.ACTIVE
        assert by_id[3] is Status.RETIRED
        assert by_id[5] is Status.ACTIVE  # NULL yields the first member
        assert by_id[7] is None  # undeclared name yields the default

    def test_bound_arguments(self, repo: ProductRepository) -> None:
        assert [p.name for p in repo.by_category("TOOLS")] == ["drill", "gauge"]

    def test_injection_attempt_is_just_a_value(self, repo: ProductRepository) -> None:
        assert repo.by_category("x' OR '1'='1") == []

    def test_select(self, repo: ProductRepository) -> None:
        assert repo.by_id(4) == Product(4, "drill", 89.0, Status.ACTIVE)
        assert repo.by_id(404) is None

    def test_scalar(self, repo: ProductRepository) -> None:
        assert repo.count() == 7

    def test_execute_commits(self, repo: ProductRepository, sqlite_path: Path) -> None:
        assert repo.reprice(2, 0.3) is True
        assert repo.reprice(404, 1.0) is False

        conn = sqlite3.connect(sqlite_path)
        try:
            assert conn.execute("SELECT price FROM products WHERE id = 2").fetchone() == (0.3,)
        finally:
            conn.close()

    def test_execute_reader(self, repo: ProductRepository) -> None:
        names: list[str] = []

        def collect(reader: RowReader) -> None:
            names.extend(row.get("name", str) for row in reader)

        assert repo.execute_reader(collect, "SELECT name FROM products WHERE price > {0} ORDER BY name", 20) is True
        assert names == ["drill", "easel", "gauge"]

    def test_driver_error_propagates_unchanged(self, repo: ProductRepository) -> None:
        with capture_logs() as logs:
            with pytest.raises(sqlite3.OperationalError, match="no such table"):
                repo.select_all(to_product, "SELECT * FROM missing")
        assert logs[0]["event"] == "command.failed"
        assert logs[0]["sql"] == "SELECT * FROM missing"

    def test_sqlite_has_no_procedures(self, repo: ProductRepository) -> None:
        with pytest.raises(NotSupportedError):
            repo.procedure("anything", lambda command: None)


class TestPagination:
    def test_sqlite_uses_limit_offset(self, repo: ProductRepository) -> None:
        page = PaginationFilter(page=2, page_size=3, order_by="price", order=Order.DESC)
        assert [p.name for p in repo.all(page)] == ["anvil", "crate", "funnel"]

    def test_last_partial_page(self, repo: ProductRepository) -> None:
        page = PaginationFilter(page=3, page_size=3, order_by="name")
        assert [p.name for p in repo.all(page)] == ["gauge"]

    def test_unpaged_filter_returns_everything(self, repo: ProductRepository) -> None:
        assert len(repo.all(PaginationFilter(page_size=0))) == 7

    def test_explicit_paginator_rewrites_sql(self, fake_context: DatabaseContext) -> None:
        repo = RepositoryBase(paginator=RowNumPaginator(), context=fake_context)
        assert repo.paginate("SELECT * FROM t", PaginationFilter(page=1, page_size=5)) == (
            "SELECT * FROM (SELECT v.*, ROWNUM rn FROM (SELECT * FROM t) v WHERE rownum <= 5) WHERE rn >= 0"
        )

    @pytest.mark.parametrize(
        ("sql", "args", "expected_params"),
        [
            ("SELECT * FROM t WHERE c = {0}", (1,), (1,)),
            ("SELECT * FROM t", (), ()),
        ],
    )
    def test_braces_in_sort_column_are_literal(
        self, fake_context: DatabaseContext, fake_driver, sql: str, args: tuple, expected_params: tuple
    ) -> None:
        repo = RepositoryBase(context=fake_context)
        page = PaginationFilter(page=1, page_size=5, order_by="weird}{col")

        assert repo.select_all(lambda row: row, sql, *args, page_filter=page) == []

        executed, params = fake_driver.executed[-1]
        assert 'ORDER BY "WEIRD}{COL" ASC' in executed
        assert params == expected_params

    def test_paged_filter_without_paginator(self, fake_provider) -> None:
        fake_provider.dialect = "informix"
        context = DatabaseContext.from_config(
            ConnectionConfig(name="x", connection_string="x", provider_name="fake")
        )
        repo = RepositoryBase(context=context)
        assert repo.paginator is None
        assert repo.paginate("SELECT 1", None) == "SELECT 1"
        with pytest.raises(NotSupportedError):
            repo.paginate("SELECT 1", PaginationFilter(page_size=5))


class TestComposition:
    def test_uses_process_default_context(self, sqlite_context: DatabaseContext) -> None:
        set_default_context(sqlite_context)
        repo = ProductRepository()
        assert repo.context is sqlite_context
        assert repo.count() == 7

    def test_injected_pipeline(self, sqlite_context: DatabaseContext) -> None:
        pipeline = CommandPipeline(sqlite_context)
        repo = ProductRepository(context=sqlite_context, pipeline=pipeline)
        assert repo.pipeline is pipeline

    def test_get_connection_is_unopened(self, repo: ProductRepository) -> None:
        connection = repo.get_connection()
        assert not connection.is_open

    def test_begin_transaction(self, repo: ProductRepository) -> None:
        with repo.get_connection() as connection:
            command = repo.create_command(connection, "DELETE FROM products WHERE id = {0}", 1)
            transaction = repo.begin_transaction(command)
            assert connection.is_open
            assert command.transaction is transaction
            command.execute_non_query()
            transaction.rollback()

        assert repo.count() == 7

    def test_transaction_commit(self, repo: ProductRepository) -> None:
        with repo.get_connection() as connection:
            command = repo.create_command(connection, "DELETE FROM products WHERE id = {0}", 1)
            with repo.begin_transaction(command):
                command.execute_non_query()

        assert repo.count() == 6

    def test_execute_command(self, repo: ProductRepository) -> None:
        def columns(command: Command) -> list[str]:
            with command.execute_reader() as reader:
                return reader.columns

        assert repo.execute_command(columns, "SELECT id, name FROM products") == ["id", "name"]
