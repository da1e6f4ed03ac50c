# Overview: Pytest coverage for the branch -> subdistrict -> city hierarchy.

import pytest

from reportflow.errors import NotFound, ValidationError
from reportflow.services import location_service


class TestLocationChain:

    def test_branch_resolves_to_full_chain(self, locations):
        chain = location_service.load_location_chain(locations.menteng_raya.id)

        assert chain.branch_name == "Menteng Raya"
        assert chain.subdistrict_id == locations.menteng.id
        assert chain.subdistrict_name == "Menteng"
        assert chain.city_id == locations.jakarta.id
        assert chain.city_name == "Jakarta"
        assert chain.branch_manager == "Budi Santoso"

    def test_report_fields_exclude_manager(self, locations):
        fields = location_service.load_location_chain(locations.senopati.id).to_report_fields()
        assert set(fields) == {
            "branch_id", "branch_name",
            "subdistrict_id", "subdistrict_name",
            "city_id", "city_name",
        }

    def test_unknown_branch(self, db_session):
        with pytest.raises(NotFound):
            location_service.load_location_chain(999999)


class TestValidateLocationTriple:

    def test_consistent_triple(self, locations):
        chain = location_service.validate_location_triple(
            locations.menteng_raya.id, locations.menteng.id, locations.jakarta.id
        )
        assert chain.branch_id == locations.menteng_raya.id

    def test_branch_outside_subdistrict(self, locations):
        with pytest.raises(ValidationError) as exc_info:
            location_service.validate_location_triple(
                locations.menteng_raya.id, locations.kebayoran.id, locations.jakarta.id
            )
        assert "does not belong to subdistrict" in exc_info.value.message

    def test_subdistrict_outside_city(self, locations):
        with pytest.raises(ValidationError) as exc_info:
            location_service.validate_location_triple(
                locations.menteng_raya.id, locations.menteng.id, locations.bandung.id
            )
        assert "does not belong to city" in exc_info.value.message

    def test_missing_ids_are_listed(self, locations):
        with pytest.raises(ValidationError) as exc_info:
            location_service.validate_location_triple(locations.menteng_raya.id, None, None)
        assert exc_info.value.details["missing"] == ["subdistrict_id", "city_id"]

    def test_unknown_branch_is_a_validation_error(self, locations):
        with pytest.raises(ValidationError):
            location_service.validate_location_triple(999999, locations.menteng.id, locations.jakarta.id)


class TestResolveAssignment:

    def test_branch_user_carries_whole_chain(self, users, locations):
        assignment = location_service.resolve_assignment(users.branch_user)
        assert assignment.branch_id == locations.menteng_raya.id
        assert assignment.subdistrict_name == "Menteng"
        assert assignment.city_name == "Jakarta"

    def test_subdistrict_admin_carries_subdistrict_and_city(self, users, locations):
        assignment = location_service.resolve_assignment(users.kebayoran_admin)
        assert assignment.branch_id is None
        assert assignment.subdistrict_id == locations.kebayoran.id
        assert assignment.subdistrict_name == "Kebayoran Baru"
        assert assignment.city_name == "Jakarta"

    def test_city_admin_carries_only_city(self, users, locations):
        assignment = location_service.resolve_assignment(users.bandung_admin)
        assert assignment.city_id == locations.bandung.id
        assert assignment.subdistrict_id is None

    def test_super_admin_has_no_assignment(self, users):
        assignment = location_service.resolve_assignment(users.super_admin)
        assert assignment == location_service.LocationAssignment()


class TestReferenceData:

    def test_lists_are_sorted_by_name(self, locations):
        assert [c.name for c in location_service.list_cities()] == ["Bandung", "Jakarta"]
        names = [s.name for s in location_service.list_subdistricts(city_id=locations.jakarta.id)]
        assert names == ["Kebayoran Baru", "Menteng"]
        branches = location_service.list_branches(subdistrict_id=locations.coblong.id)
        assert [b.name for b in branches] == ["Dago"]

    def test_duplicate_city_rejected(self, locations):
        with pytest.raises(ValidationError):
            location_service.create_city("Jakarta")

    def test_blank_names_rejected(self, locations):
        with pytest.raises(ValidationError):
            location_service.create_city("  ")
        with pytest.raises(ValidationError):
            location_service.create_subdistrict("", locations.jakarta.id)
        with pytest.raises(ValidationError):
            location_service.create_branch("", locations.menteng.id)

    def test_parent_must_exist(self, db_session):
        with pytest.raises(NotFound):
            location_service.create_subdistrict("Orphan", 999999)
        with pytest.raises(NotFound):
            location_service.create_branch("Orphan", 999999)
