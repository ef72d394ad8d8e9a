import logging
import os

import click
from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from database import db

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


# Initialize Flask app
app = Flask(__name__)
app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///solarpm.db")
app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-only-secret-key")
app.config["SITE_PASSWORD_KEYS"] = os.environ.get("SITE_PASSWORD_KEYS")
app.config["TELEGRAM_BOT_TOKEN"] = os.environ.get("TELEGRAM_BOT_TOKEN")
app.config["TELEGRAM_CHAT_ID"] = os.environ.get("TELEGRAM_CHAT_ID")
app.config["TELEGRAM_QUIET_HOURS_START"] = os.environ.get("TELEGRAM_QUIET_HOURS_START", "20")
app.config["TELEGRAM_QUIET_HOURS_END"] = os.environ.get("TELEGRAM_QUIET_HOURS_END", "9")
app.config["TELEGRAM_TEST_REQUIRE_SECRET"] = os.environ.get("TELEGRAM_TEST_REQUIRE_SECRET", "true")
app.config["CRON_SECRET"] = os.environ.get("CRON_SECRET")
app.config["FIREBASE_PROJECT_ID"] = os.environ.get("FIREBASE_PROJECT_ID")
app.config["FIREBASE_CLIENT_EMAIL"] = os.environ.get("FIREBASE_CLIENT_EMAIL")
app.config["FIREBASE_PRIVATE_KEY"] = os.environ.get("FIREBASE_PRIVATE_KEY")
app.config["DEV_AUTO_PROVISION_TENANT"] = _env_flag("DEV_AUTO_PROVISION_TENANT")
app.json.ensure_ascii = False

db.init_app(app)

# Models import should be after initializing db
import models  # noqa: E402,F401

from routes import json_error  # noqa: E402
from routes.budget import budget_bp  # noqa: E402
from routes.checklist import checklist_bp  # noqa: E402
from routes.checklist_templates import checklist_templates_bp  # noqa: E402
from routes.dashboard import dashboard_bp  # noqa: E402
from routes.notifications import notifications_bp  # noqa: E402
from routes.projects import projects_bp  # noqa: E402
from routes.stages import stages_bp  # noqa: E402
from routes.tasks import tasks_bp  # noqa: E402
from routes.templates import templates_bp  # noqa: E402
from routes.vendors import vendors_bp  # noqa: E402
from services.project_service import rotate_site_passwords  # noqa: E402
from services.tenant_service import provision_company, seed_stage_templates  # noqa: E402

# Create flask command lines to update the db based on the model
# Usage:
# > flask db migrate -m "Describe the change"
# > flask db upgrade
migrate = Migrate(app, db)
app.register_blueprint(dashboard_bp)
app.register_blueprint(tasks_bp)
app.register_blueprint(stages_bp)
app.register_blueprint(projects_bp)
app.register_blueprint(checklist_bp)
app.register_blueprint(notifications_bp)
app.register_blueprint(vendors_bp)
app.register_blueprint(budget_bp)
app.register_blueprint(checklist_templates_bp)
app.register_blueprint(templates_bp)


# Error handling
# ------------------------------
@app.errorhandler(HTTPException)
def handle_http_exception(error: HTTPException):
    return json_error(error.description or error.name, status=error.code or 500)


@app.errorhandler(Exception)
def handle_unexpected_exception(error: Exception):
    db.session.rollback()
    logging.error("Unhandled error: %s", error, exc_info=True)
    return json_error("Internal server error", status=500)


@app.route("/api/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


# Tenant provisioning
# ------------------------------
@app.cli.command("create-company")
@click.argument("name")
@click.option("--without-templates", is_flag=True, help="Skip the default permitting stages.")
def create_company_command(name, without_templates):
    """Create a company (tenant), seeded with the default stage templates."""
    company = provision_company(name, with_default_templates=not without_templates)
    db.session.commit()
    click.echo(f"Created company {company.id}: {company.name}")


@app.cli.command("seed-templates")
@click.argument("company_id", type=int)
def seed_templates_command(company_id):
    """Add any missing default stage templates to an existing company."""
    company = db.session.get(models.Company, company_id)
    if company is None:
        raise click.ClickException(f"Company {company_id} does not exist.")
    created = seed_stage_templates(company)
    db.session.commit()
    click.echo(f"Added {len(created)} stage templates to company {company.id}")


@app.cli.command("rotate-site-passwords")
def rotate_site_passwords_command():
    """Re-encrypt stored site passwords with the first SITE_PASSWORD_KEYS key."""
    result = rotate_site_passwords()
    db.session.commit()
    click.echo(f"Rotated {result['rotated']} site passwords, {result['unreadable']} unreadable")


# Application Execution
# ------------------------------
if __name__ == "__main__":
    app.run(debug=True)
