"""Tests for duplicate detection and relationship validation."""

from datetime import date, datetime

import pytest

from memorial.services.exchange import DuplicateDetector, RelationshipValidator


class TestDuplicateDetector:
    @pytest.mark.asyncio
    async def test_match_on_every_natural_key_field(self, store):
        store.seed("wars", {"id": "w1", "nameEn": "War", "nameAr": "حرب"})
        detector = DuplicateDetector(store)

        found = await detector.is_duplicate("wars", {"nameEn": "War", "nameAr": "حرب"})
        other = await detector.is_duplicate("wars", {"nameEn": "War", "nameAr": "other"})

        assert found.is_duplicate is True
        assert found.existing_record["id"] == "w1"
        assert other.is_duplicate is False

    @pytest.mark.asyncio
    async def test_dates_compared_in_store_form(self, store):
        store.seed("activities", {"id": "a1", "nameEn": "Visit", "date": datetime(2023, 3, 15)})
        detector = DuplicateDetector(store)

        check = await detector.is_duplicate("activities", {"nameEn": "Visit", "date": date(2023, 3, 15)})

        assert check.is_duplicate is True

    @pytest.mark.asyncio
    async def test_unknown_collection_is_never_duplicate(self, store):
        check = await DuplicateDetector(store).is_duplicate("nope", {"nameEn": "x"})
        assert check.is_duplicate is False
        assert store.calls == {}

    @pytest.mark.asyncio
    async def test_lookups_are_memoized(self, store):
        detector = DuplicateDetector(store)
        record = {"nameEn": "War", "nameAr": "حرب"}

        await detector.is_duplicate("wars", record)
        await detector.is_duplicate("wars", record)

        assert store.calls[("find", "wars")] == 1

    @pytest.mark.asyncio
    async def test_remembered_record_is_duplicate(self, store):
        detector = DuplicateDetector(store)
        record = {"id": "w9", "nameEn": "War", "nameAr": "حرب"}

        assert (await detector.is_duplicate("wars", record)).is_duplicate is False
        detector.remember("wars", record)
        check = await detector.is_duplicate("wars", record)

        assert check.is_duplicate is True
        assert check.existing_record["id"] == "w9"

    @pytest.mark.asyncio
    async def test_failed_lookup_is_not_duplicate(self, store):
        store.fail("find", "wars")
        check = await DuplicateDetector(store).is_duplicate("wars", {"nameEn": "War"})
        assert check.is_duplicate is False


class TestRelationshipValidator:
    @pytest.mark.asyncio
    async def test_empty_relations_are_valid(self, store):
        check = await RelationshipValidator(store).validate_relations(
            "martyrs", {"warId": None, "locationId": ""}
        )
        assert check.valid is True
        assert check.errors == []
        assert store.calls == {}

    @pytest.mark.asyncio
    async def test_missing_reference(self, store):
        check = await RelationshipValidator(store).validate_relations(
            "locations", {"sectorId": "s404"}
        )
        assert check.valid is False
        assert check.errors == ['Sector with ID "s404" does not exist in sectors']

    @pytest.mark.asyncio
    async def test_lookup_failure_message(self, store):
        store.fail("get", "wars", RuntimeError("boom"))
        check = await RelationshipValidator(store).validate_relations("martyrs", {"warId": "w1"})
        assert check.errors == ["Failed to validate War: boom"]

    @pytest.mark.asyncio
    async def test_resolved_references_are_cached(self, store):
        store.seed("villages", {"id": "v1", "nameEn": "Village"})
        validator = RelationshipValidator(store)

        for _ in range(3):
            check = await validator.validate_relations("activities", {"villageId": "v1"})
            assert check.valid is True

        assert store.calls[("get", "villages")] == 1

    @pytest.mark.asyncio
    async def test_missing_references_are_rechecked(self, store):
        validator = RelationshipValidator(store)
        await validator.validate_relations("activities", {"villageId": "v1"})

        store.seed("villages", {"id": "v1", "nameEn": "Village"})
        check = await validator.validate_relations("activities", {"villageId": "v1"})

        assert check.valid is True
        assert store.calls[("get", "villages")] == 2

    @pytest.mark.asyncio
    async def test_unvalidated_references_are_ignored(self, store):
        check = await RelationshipValidator(store).validate_relations(
            "locations", {"legendId": "anything"}
        )
        assert check.valid is True
