"""Tests for generic inserts, updates and deletes."""

import pytest
from sqlalchemy import func, select, table, text
from sqlalchemy.exc import DataError

from app.core.exceptions import (
    AmbiguousIdentity,
    ConstraintViolation,
    InvalidFieldType,
    InvalidRequest,
    MissingRequiredField,
    RecordNotFound,
    UnknownColumn,
    UnknownTable,
)
from app.models import Campaign, page_views
from app.schemas.table import KeySource
from app.services.introspector import SchemaIntrospector
from app.services.query_executor import PaginatedQueryExecutor
from app.services.record_mutator import RecordMutator


async def count(db, table) -> int:
    result = await db.execute(select(func.count()).select_from(table))
    return result.scalar_one()


@pytest.mark.asyncio
class TestInsert:
    """Test inserting rows."""

    async def test_insert_returns_generated_id(self, seeded):
        """Insert should coerce values and return the generated id."""
        result = await RecordMutator(seeded).insert(
            "campaigns",
            {
                "title": "Spring Drive",
                "budget": "12.50",
                "starts_on": "2025-05-01",
                "settings": '{"goal": 100}',
            },
        )

        assert result.id == 4
        assert result.identity.column == "id"
        assert result.identity.source == KeySource.DECLARED_PRIMARY

        page = await PaginatedQueryExecutor(seeded).fetch_page("campaigns", 1, 10)
        row = page.rows[-1]
        assert row["title"] == "Spring Drive"
        assert row["starts_on"] == "2025-05-01"
        assert row["settings"] == '{"goal": 100}'
        assert row["status"] == "draft"

    async def test_blank_auto_id_is_filled_by_store(self, seeded):
        """A blank auto-generated id should be left to the store."""
        result = await RecordMutator(seeded).insert("campaigns", {"id": "", "title": "Blank id"})

        assert result.id == 4

    async def test_missing_required_field(self, seeded):
        """A missing required column should fail before anything is written."""
        before = await count(seeded, Campaign.__table__)

        with pytest.raises(MissingRequiredField) as exc_info:
            await RecordMutator(seeded).insert("campaigns", {"status": "active"})

        assert exc_info.value.column_name == "title"
        assert await count(seeded, Campaign.__table__) == before

    @pytest.mark.parametrize(
        "table_name, fields, column_name",
        [
            ("campaigns", {"title": ""}, "title"),
            ("campaign_registrations", {"campaign_id": "", "user_id": 1}, "campaign_id"),
        ],
    )
    async def test_blank_required_field_is_missing(self, seeded, table_name, fields, column_name):
        """A required column left blank in the form counts as missing."""
        with pytest.raises(MissingRequiredField) as exc_info:
            await RecordMutator(seeded).insert(table_name, fields)

        assert exc_info.value.column_name == column_name

    async def test_key_the_store_does_not_fill_is_required(self, db_session):
        """An integer key the store will not generate must be supplied."""
        await db_session.execute(
            text(
                "CREATE TABLE tags (id INTEGER NOT NULL, label TEXT, PRIMARY KEY (id)) "
                "WITHOUT ROWID"
            )
        )
        await db_session.commit()
        mutator = RecordMutator(db_session)

        with pytest.raises(MissingRequiredField) as exc_info:
            await mutator.insert("tags", {"label": "urgent"})
        assert exc_info.value.column_name == "id"

        result = await mutator.insert("tags", {"id": "5", "label": "urgent"})
        assert result.id == 5

    async def test_unknown_column(self, seeded):
        """Fields must be columns of the table."""
        with pytest.raises(UnknownColumn):
            await RecordMutator(seeded).insert("campaigns", {"title": "x", "colour": "red"})

    async def test_unknown_table(self, seeded):
        """Inserts into missing tables should fail."""
        with pytest.raises(UnknownTable):
            await RecordMutator(seeded).insert("ghosts", {"name": "boo"})

    async def test_invalid_type(self, seeded):
        """Values that do not fit their column should fail."""
        with pytest.raises(InvalidFieldType):
            await RecordMutator(seeded).insert("campaigns", {"title": "x", "budget": "lots"})

    async def test_unique_violation(self, seeded):
        """A duplicate unique value should carry the store's message."""
        with pytest.raises(ConstraintViolation) as exc_info:
            await RecordMutator(seeded).insert(
                "users", {"email": "user1@example.com", "full_name": "Dupe"}
            )

        assert "UNIQUE" in exc_info.value.message
        assert await count(seeded, table("users")) == 120

    async def test_foreign_key_violation(self, seeded):
        """A reference to a missing row should be rejected."""
        with pytest.raises(ConstraintViolation):
            await RecordMutator(seeded).insert(
                "campaign_registrations", {"campaign_id": 99, "user_id": 1}
            )

    async def test_store_data_error_is_invalid_field_type(self, seeded, monkeypatch):
        """A value the store rejects as data is a field type error, not a constraint."""

        async def reject(stmt, *args, **kwargs):
            raise DataError(
                "INSERT", {}, Exception("value too long for type character varying(200)")
            )

        monkeypatch.setattr(seeded, "execute", reject)

        with pytest.raises(InvalidFieldType) as exc_info:
            await RecordMutator(seeded).insert("campaigns", {"title": "x" * 300})

        assert exc_info.value.message == "value too long for type character varying(200)"

    async def test_table_dropped_before_write(self, seeded, monkeypatch):
        """A table dropped before the write runs should be UnknownTable."""
        reflect_table = SchemaIntrospector.reflect_table

        async def reflect_then_drop(self, table_name):
            reflected = await reflect_table(self, table_name)
            await self.db.execute(text(f"DROP TABLE {table_name}"))
            await self.db.commit()
            return reflected

        monkeypatch.setattr(SchemaIntrospector, "reflect_table", reflect_then_drop)

        with pytest.raises(UnknownTable):
            await RecordMutator(seeded).insert("media_assets", {"filename": "a.png"})

    async def test_keyless_insert_needs_confirmation(self, seeded):
        """Inserts into a key-less table need the identity confirmed."""
        mutator = RecordMutator(seeded)

        with pytest.raises(AmbiguousIdentity):
            await mutator.insert("page_views", {"path": "/about"})

        result = await mutator.insert("page_views", {"path": "/about"}, confirm_identity=True)
        assert result.id == "/about"
        assert result.identity.ambiguous is True
        assert await count(seeded, page_views) == 4


@pytest.mark.asyncio
class TestUpdate:
    """Test updating rows."""

    async def test_update_changes_only_given_fields(self, seeded):
        """Only the submitted columns should change."""
        await RecordMutator(seeded).update("campaigns", "1", {"status": "closed"})

        row = (await seeded.execute(select(Campaign).where(Campaign.id == 1))).scalar_one()
        assert row.status == "closed"
        assert row.title == "Clean Water Week"

    async def test_update_referenced_row(self, seeded):
        """A row referenced by other rows can still be updated."""
        await RecordMutator(seeded).update("campaigns", 1, {"title": "Clean Water Month"})

        result = await seeded.execute(select(Campaign.title).where(Campaign.id == 1))
        assert result.scalar_one() == "Clean Water Month"

    async def test_update_missing_row(self, seeded):
        """Updating a missing row should raise RecordNotFound."""
        with pytest.raises(RecordNotFound):
            await RecordMutator(seeded).update("campaigns", 999, {"title": "Nope"})

    async def test_update_without_fields(self, seeded):
        """An empty update should be rejected."""
        with pytest.raises(InvalidRequest):
            await RecordMutator(seeded).update("campaigns", 1, {})

    async def test_update_with_blank_identity(self, seeded):
        """A blank identity should be rejected."""
        with pytest.raises(InvalidRequest):
            await RecordMutator(seeded).update("campaigns", "", {"title": "x"})

    async def test_update_with_malformed_identity(self, seeded):
        """The identity must fit the key column's type."""
        with pytest.raises(InvalidFieldType):
            await RecordMutator(seeded).update("campaigns", "abc", {"title": "x"})

    async def test_update_null_into_required_column(self, seeded):
        """Null cannot be written to a non-nullable column."""
        with pytest.raises(InvalidFieldType):
            await RecordMutator(seeded).update("campaigns", 1, {"title": None})

    async def test_update_composite_key_table_needs_confirmation(self, seeded):
        """Updates addressed by part of a composite key need confirmation."""
        with pytest.raises(AmbiguousIdentity):
            await RecordMutator(seeded).update("translations", "en", {"value": "Give"})

    async def test_update_matching_many_rows_is_rolled_back(self, seeded):
        """An update hitting several rows should change nothing."""
        with pytest.raises(AmbiguousIdentity) as exc_info:
            await RecordMutator(seeded).update(
                "page_views", "/", {"visitor": "z"}, confirm_identity=True
            )

        assert "2 rows" in exc_info.value.message
        result = await seeded.execute(
            select(func.count()).select_from(page_views).where(page_views.c.visitor == "z")
        )
        assert result.scalar_one() == 0

    async def test_confirmed_update_matching_one_row(self, seeded):
        """A confirmed update hitting one row should succeed."""
        await RecordMutator(seeded).update(
            "page_views", "/donate", {"visitor": "z"}, confirm_identity=True
        )

        result = await seeded.execute(
            select(page_views.c.path).where(page_views.c.visitor == "z")
        )
        assert result.scalars().all() == ["/donate"]


@pytest.mark.asyncio
class TestDelete:
    """Test deleting rows."""

    async def test_delete(self, seeded):
        """Deleting an unreferenced row should succeed."""
        await RecordMutator(seeded).delete("campaigns", "3")

        assert await count(seeded, Campaign.__table__) == 2

    async def test_delete_referenced_row(self, seeded):
        """Deleting a referenced row should carry the store's message."""
        with pytest.raises(ConstraintViolation) as exc_info:
            await RecordMutator(seeded).delete("campaigns", 1)

        assert "FOREIGN KEY constraint failed" in exc_info.value.message
        assert await count(seeded, Campaign.__table__) == 3

    async def test_delete_missing_row(self, seeded):
        """Deleting a missing row should raise RecordNotFound."""
        with pytest.raises(RecordNotFound):
            await RecordMutator(seeded).delete("campaigns", 999)

    async def test_delete_keyless_row_needs_confirmation(self, seeded):
        """Deletes from a key-less table need the identity confirmed."""
        mutator = RecordMutator(seeded)

        with pytest.raises(AmbiguousIdentity):
            await mutator.delete("page_views", "/donate")

        await mutator.delete("page_views", "/donate", confirm_identity=True)
        assert await count(seeded, page_views) == 2

    async def test_delete_matching_many_rows_is_rolled_back(self, seeded):
        """A delete hitting several rows should remove nothing."""
        with pytest.raises(AmbiguousIdentity):
            await RecordMutator(seeded).delete("page_views", "/", confirm_identity=True)

        assert await count(seeded, page_views) == 3
