import click
from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS

from config import Config
from models import db
from routes.campus_drive_routes import campus_drives_bp
from routes.exam_routes import exams_bp
from services.auth_service import create_user, load_current_user
from services.errors import ApiError, register_error_handlers

load_dotenv()


def register_commands(app: Flask):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo("Database initialised.")

    @app.cli.command("create-admin")
    @click.argument("name")
    @click.argument("email")
    def create_admin(name: str, email: str):
        """Create an admin user and print its API token."""
        try:
            user, token = create_user(name, email, role="admin")
        except ApiError as exc:
            raise click.ClickException(exc.message)
        click.echo(f"Admin {user.email} created. Token (shown once): {token}")


def create_app(config_class=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config["LOG_LEVEL"])
    app.json.sort_keys = app.config["JSON_SORT_KEYS"]

    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})
    db.init_app(app)

    app.before_request(load_current_user)
    app.register_blueprint(exams_bp)
    app.register_blueprint(campus_drives_bp)
    register_error_handlers(app)
    register_commands(app)

    with app.app_context():
        db.create_all()

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
