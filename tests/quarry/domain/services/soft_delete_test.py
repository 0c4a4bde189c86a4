"""Tests for the soft delete guard."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sample_models import Article, Tag

from quarry.domain.entities import EntityDescriptor, FieldKind
from quarry.domain.errors import ConfigurationError
from quarry.domain.services.soft_delete import SoftDeleteGuard
from quarry.infrastructure.sqlalchemy.query import (
    FilterCriteria,
    FilterOperator,
    QueryBuilder,
)

NOW = datetime(2024, 5, 1, 12, 30, 15)  # noqa: DTZ001


@pytest.fixture
def store() -> MagicMock:
    """Create a store double."""
    store = MagicMock()
    store.remove = AsyncMock(return_value=None)
    store.update = AsyncMock(side_effect=lambda record, changes: record)
    store.now = MagicMock(return_value=NOW)
    return store


@pytest.fixture
def guard() -> SoftDeleteGuard:
    """Create a guard."""
    return SoftDeleteGuard()


def _descriptor(soft_delete: str | None, kind: FieldKind) -> EntityDescriptor:
    return EntityDescriptor(
        name="articles",
        model=Article,
        fields={"id": FieldKind.OTHER, "deleted_at": kind},
        soft_delete=soft_delete,
    )


class TestVisibility:
    """Tests for the read visibility predicate."""

    def test_disabled_has_no_predicate(self, guard: SoftDeleteGuard) -> None:
        """Verifies entities without soft delete see every row."""
        descriptor = _descriptor(None, FieldKind.DATE_NO_ZONE)

        assert not guard.is_enabled(descriptor)
        assert guard.visibility_predicate(descriptor) is None
        assert guard.apply_visibility(QueryBuilder(), descriptor) == QueryBuilder()

    def test_enabled_hides_stamped_rows(self, guard: SoftDeleteGuard) -> None:
        """Verifies the predicate requires an unset soft delete field."""
        descriptor = _descriptor("deleted_at", FieldKind.DATE_NO_ZONE)

        assert guard.is_enabled(descriptor)
        assert guard.visibility_predicate(descriptor) == FilterCriteria(
            "deleted_at", FilterOperator.IS_NULL
        )


class TestDelete:
    """Tests for the delete strategy."""

    async def test_disabled_removes_record(
        self, guard: SoftDeleteGuard, store: MagicMock
    ) -> None:
        """Verifies a physical delete without soft delete."""
        record = Article(id=1, title="gone")

        await guard.delete(record, _descriptor(None, FieldKind.OTHER), store)

        store.remove.assert_awaited_once_with(record)
        store.update.assert_not_called()

    @pytest.mark.parametrize("kind", [FieldKind.DATE_NO_ZONE, FieldKind.DATE_UTC])
    async def test_enabled_stamps_field(
        self, guard: SoftDeleteGuard, store: MagicMock, kind: FieldKind
    ) -> None:
        """Verifies a soft delete updates the field with the store's now."""
        record = Article(id=1, title="hidden")

        await guard.delete(record, _descriptor("deleted_at", kind), store)

        store.now.assert_called_once_with(kind)
        store.update.assert_awaited_once_with(record, {"deleted_at": NOW})
        store.remove.assert_not_called()

    async def test_non_timestamp_field_fails_at_delete_time(
        self, guard: SoftDeleteGuard, store: MagicMock
    ) -> None:
        """Verifies an unsupported field kind is a configuration error."""
        descriptor = EntityDescriptor(
            name="tags",
            model=Tag,
            fields={"id": FieldKind.OTHER, "archived": FieldKind.OTHER},
            soft_delete="archived",
        )

        with pytest.raises(ConfigurationError):
            await guard.delete(Tag(id=1, label="x"), descriptor, store)

        store.update.assert_not_called()
        store.remove.assert_not_called()

    async def test_utc_kind_uses_aware_timestamp(self, guard: SoftDeleteGuard) -> None:
        """Verifies the timestamp passed through matches the declared kind."""
        aware = datetime(2024, 5, 1, tzinfo=UTC)
        store = MagicMock()
        store.update = AsyncMock(side_effect=lambda record, changes: changes)
        store.now = MagicMock(return_value=aware)

        changes = await guard.delete(
            Article(id=1, title="x"), _descriptor("deleted_at", FieldKind.DATE_UTC), store
        )

        assert changes == {"deleted_at": aware}
