# Overview: Pytest coverage for the Flask CLI command groups.

import pytest

from reportflow.models import Branch, User


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


class TestSeedDemo:

    def test_seed_is_idempotent(self, runner, db_session):
        first = runner.invoke(args=["system", "seed-demo"])
        assert first.exit_code == 0
        assert "PASS Created user: admin.menteng@reportflow.local" in first.output
        users_after_first = db_session.query(User).count()

        second = runner.invoke(args=["system", "seed-demo"])
        assert second.exit_code == 0
        assert "already exists" in second.output
        assert db_session.query(User).count() == users_after_first
        assert db_session.query(Branch).filter_by(name="Menteng Raya").count() == 1


class TestLocationCommands:

    def test_add_and_list(self, runner, db_session):
        assert runner.invoke(args=["locations", "add-city", "--name", "Surabaya"]).exit_code == 0
        listing = runner.invoke(args=["locations", "list"])
        assert "Surabaya" in listing.output

    def test_unknown_parent_is_reported(self, runner, db_session):
        result = runner.invoke(args=["locations", "add-branch", "--subdistrict-id", "999999", "--name", "Ghost"])
        assert result.exit_code == 0
        assert result.output.startswith("FAIL")


class TestUserCommands:

    def test_create_and_list(self, runner, locations):
        result = runner.invoke(args=[
            "users", "create",
            "--email", "new@menteng.test",
            "--name", "New Admin",
            "--password", "Password123!",
            "--role", "subdistrict_admin",
            "--subdistrict-id", str(locations.menteng.id),
        ])
        assert result.exit_code == 0, result.output
        assert "PASS Created user: new@menteng.test" in result.output

        listing = runner.invoke(args=["users", "list", "--role", "subdistrict_admin"])
        assert "new@menteng.test" in listing.output
        assert "Menteng" in listing.output

    def test_weak_password_is_reported(self, runner, locations):
        result = runner.invoke(args=[
            "users", "create",
            "--email", "weak@menteng.test",
            "--name", "Weak",
            "--password", "weak",
            "--role", "city_admin",
            "--city-id", str(locations.jakarta.id),
        ])
        assert "FAIL Password must be at least 8 characters long" in result.output


class TestReportCommands:

    def test_list(self, runner, pending_city_report):
        result = runner.invoke(args=["reports", "list", "--status", "pending_city"])
        assert result.exit_code == 0
        assert "Menteng Raya" in result.output

    def test_empty(self, runner, db_session):
        result = runner.invoke(args=["reports", "list"])
        assert "No reports found." in result.output


class TestRoleCommands:

    def test_show_subdistrict_admin(self, runner):
        result = runner.invoke(args=["roles", "show", "--role", "subdistrict_admin"])

        assert result.exit_code == 0
        assert "subdistrict_admin (assigned to: subdistrict)" in result.output
        assert "Approve Report" in result.output
        assert "pending_subdistrict" in result.output

    def test_show_super_admin(self, runner):
        result = runner.invoke(args=["roles", "show", "--role", "super_admin"])
        assert "assigned to: none" in result.output
