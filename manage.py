import click
from flask.cli import with_appcontext
from flask_migrate import upgrade, migrate, init
from schooldesk import create_app
from schooldesk.seed import seed_data

app = create_app()


@app.cli.command("db-init")
@with_appcontext
def db_init():
    """Initializes migrations directory"""
    init()


@app.cli.command("db-migrate")
@with_appcontext
def db_migrate():
    """Creates a new migration"""
    migrate()


@app.cli.command("db-upgrade")
@with_appcontext
def db_upgrade():
    """Applies migrations"""
    upgrade()


@app.cli.command("seed")
@click.option("--reset", is_flag=True, help="Drop and recreate every table first.")
@with_appcontext
def seed(reset):
    """Loads roles, a demo school and its first users"""
    seed_data(reset=reset)
    click.echo("Database seeded.")
