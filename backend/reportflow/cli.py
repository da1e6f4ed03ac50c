# Overview: Flask CLI command groups for bootstrap, reference data, and inspection.

# backend/reportflow/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Idempotent demo data: Jakarta hierarchy and one user per role.
#
# Location reference data:
# - python -m flask locations add-city --name "Jakarta"
# - python -m flask locations add-subdistrict --city-id 1 --name "Menteng"
# - python -m flask locations add-branch --subdistrict-id 1 --name "Menteng Raya" --manager "Budi Santoso"
# - python -m flask locations list
#   Print the hierarchy as a tree.
#
# User inspection/bootstrap:
# - python -m flask users list [--role branch_user]
# - python -m flask users create --email a@b.c --name "Name" --password "Password123!" --role branch_user --branch-id 1
#   Create a user (prompts if options are omitted).
#
# Role inspection:
# - python -m flask roles show --role subdistrict_admin
#   Print the role's row of the truth table.
#
# Report inspection:
# - python -m flask reports list [--status pending_city] [--limit 50]

import click
from flask.cli import with_appcontext

from .errors import WorkflowError
from .extensions import db
from .models import Branch, City, Report, Subdistrict, User
from .permissions import (
    VALID_ROLES,
    ROLE_BRANCH_USER,
    ROLE_SUBDISTRICT_ADMIN,
    ROLE_CITY_ADMIN,
    ROLE_SUPER_ADMIN,
    ROLE_ASSIGNMENT_LEVEL,
    ROLE_ACTION_STATUSES,
    ActionCategory,
    get_actions_by_category,
)
from .models.reports import REPORT_STATUSES
from .services import auth_service, location_service


DEMO_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete")


def _get_or_create_city(name):
    return db.session.query(City).filter_by(name=name).first() or location_service.create_city(name)


def _get_or_create_subdistrict(name, city_id):
    existing = db.session.query(Subdistrict).filter_by(name=name, city_id=city_id).first()
    return existing or location_service.create_subdistrict(name, city_id)


def _get_or_create_branch(name, subdistrict_id, manager_name):
    existing = db.session.query(Branch).filter_by(name=name, subdistrict_id=subdistrict_id).first()
    return existing or location_service.create_branch(name, subdistrict_id, manager_name=manager_name)


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Seed a demo hierarchy and one account per role.

    Safe to run repeatedly; existing rows are reused.
    """
    click.echo("START Seeding demo data...")

    jakarta = _get_or_create_city("Jakarta")
    menteng = _get_or_create_subdistrict("Menteng", jakarta.id)
    kebayoran = _get_or_create_subdistrict("Kebayoran Baru", jakarta.id)
    menteng_raya = _get_or_create_branch("Menteng Raya", menteng.id, "Budi Santoso")
    senopati = _get_or_create_branch("Senopati", kebayoran.id, "Siti Rahayu")

    demo_users = [
        ("branch.menteng@reportflow.local", "Menteng Branch", ROLE_BRANCH_USER, {"branch_id": menteng_raya.id}),
        ("branch.senopati@reportflow.local", "Senopati Branch", ROLE_BRANCH_USER, {"branch_id": senopati.id}),
        ("admin.menteng@reportflow.local", "Menteng Admin", ROLE_SUBDISTRICT_ADMIN, {"subdistrict_id": menteng.id}),
        ("admin.kebayoran@reportflow.local", "Kebayoran Admin", ROLE_SUBDISTRICT_ADMIN, {"subdistrict_id": kebayoran.id}),
        ("admin.jakarta@reportflow.local", "Jakarta Admin", ROLE_CITY_ADMIN, {"city_id": jakarta.id}),
        ("super@reportflow.local", "Super Admin", ROLE_SUPER_ADMIN, {}),
    ]

    for email, name, role, assignment in demo_users:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        try:
            auth_service.create_user(email, name, DEMO_PASSWORD, role, **assignment)
            click.echo(f"PASS Created user: {email} with role '{role}'")
        except WorkflowError as e:
            click.echo(f"FAIL Failed to create user '{email}': {e.message}")

    click.echo("\nDefault password for all demo users (CHANGE IN PRODUCTION!): " + DEMO_PASSWORD)


@click.group('locations')
def locations_group():
    """Location reference data."""


@locations_group.command('add-city')
@click.option('--name', required=True, help='City name (unique)')
@with_appcontext
def add_city(name):
    try:
        city = location_service.create_city(name)
    except WorkflowError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created city: {city.name} (ID: {city.id})")


@locations_group.command('add-subdistrict')
@click.option('--city-id', type=int, required=True)
@click.option('--name', required=True)
@with_appcontext
def add_subdistrict(city_id, name):
    try:
        subdistrict = location_service.create_subdistrict(name, city_id)
    except WorkflowError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created subdistrict: {subdistrict.name} (ID: {subdistrict.id})")


@locations_group.command('add-branch')
@click.option('--subdistrict-id', type=int, required=True)
@click.option('--name', required=True)
@click.option('--manager', 'manager_name', default=None, help='Branch manager name')
@with_appcontext
def add_branch(subdistrict_id, name, manager_name):
    try:
        branch = location_service.create_branch(name, subdistrict_id, manager_name=manager_name)
    except WorkflowError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id})")


@locations_group.command('list')
@with_appcontext
def list_locations():
    """Print the hierarchy as a tree."""
    cities = location_service.list_cities()
    if not cities:
        click.echo("No locations found.")
        return

    for city in cities:
        click.echo(f"[{city.id}] {city.name}")
        for subdistrict in location_service.list_subdistricts(city_id=city.id):
            click.echo(f"    [{subdistrict.id}] {subdistrict.name}")
            for branch in location_service.list_branches(subdistrict_id=subdistrict.id):
                manager = f" (manager: {branch.manager_name})" if branch.manager_name else ""
                click.echo(f"        [{branch.id}] {branch.name}{manager}")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('create')
@click.option('--email', prompt=True)
@click.option('--name', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), prompt=True)
@click.option('--branch-id', type=int, default=None)
@click.option('--subdistrict-id', type=int, default=None)
@click.option('--city-id', type=int, default=None)
@with_appcontext
def create_user_cli(email, name, password, role, branch_id, subdistrict_id, city_id):
    """Create a user (prompts if options are omitted)."""
    try:
        user = auth_service.create_user(
            email,
            name,
            password,
            role,
            branch_id=branch_id,
            subdistrict_id=subdistrict_id,
            city_id=city_id,
        )
    except WorkflowError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), default=None, help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their role and assignment."""
    query = db.session.query(User)
    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Email':<35} {'Role':<18} {'Assignment':<30} {'Active'}")
    click.echo("="*100)

    for user in users:
        assignment = location_service.resolve_assignment(user)
        where = assignment.branch_name or assignment.subdistrict_name or assignment.city_name or "-"
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<35} {user.role:<18} {where:<30} {active_str}")

    click.echo("="*100 + "\n")


@click.group('reports')
def reports_group():
    """Report inspection."""


@reports_group.command('list')
@click.option('--status', type=click.Choice(sorted(REPORT_STATUSES)), default=None)
@click.option('--limit', type=int, default=50)
@with_appcontext
def list_reports(status, limit):
    """List recent reports, newest first."""
    query = db.session.query(Report)
    if status:
        query = query.filter_by(status=status)

    reports = query.order_by(Report.created_at.desc(), Report.id.desc()).limit(limit).all()

    if not reports:
        click.echo("No reports found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<6} {'Date':<12} {'Status':<20} {'Branch':<25} {'Subdistrict':<20} {'Creator'}")
    click.echo("="*100)

    for report in reports:
        report_date = report.report_date.isoformat() if report.report_date else "-"
        click.echo(
            f"{report.id:<6} {report_date:<12} {report.status:<20} "
            f"{report.branch_name:<25} {report.subdistrict_name:<20} {report.created_by_user_id}"
        )

    click.echo("="*100 + "\n")


@click.group('roles')
def roles_group():
    """Role inspection."""


@roles_group.command('show')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), required=True)
def show_role(role):
    """Print what a role may do, and in which report statuses."""
    level = ROLE_ASSIGNMENT_LEVEL[role] or "none"
    click.echo(f"{role} (assigned to: {level})")

    allowed = ROLE_ACTION_STATUSES.get(role, {})
    for category in (ActionCategory.AUTHORING, ActionCategory.REVIEW, ActionCategory.READ):
        click.echo(f"\n{category}")
        for code, name, _description, _category in get_actions_by_category(category):
            if code not in allowed:
                where = "-"
            elif allowed[code] is None:
                where = "always"
            else:
                where = ", ".join(sorted(allowed[code]))
            click.echo(f"  {name:<24} {where}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(locations_group)
    app.cli.add_command(users_group)
    app.cli.add_command(reports_group)
    app.cli.add_command(roles_group)
