import logging

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager
from flask_cors import CORS

from .config import Config, TestingConfig
from .logging_setup import configure_logging

db = SQLAlchemy()
jwt = JWTManager()

logger = logging.getLogger(__name__)


def create_app(testing: bool = False):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(TestingConfig if testing else Config)

    configure_logging(app.config["LOG_LEVEL"])

    db.init_app(app)
    jwt.init_app(app)
    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})

    from . import models  # noqa
    from .errors import register_error_handlers
    from .utils.authz import register_jwt_callbacks
    from .routes.auth import bp as auth_bp
    from .routes.users import bp as users_bp
    from .routes.courses import bp as courses_bp
    from .routes.enrollments import bp as enrollments_bp
    from .routes.progress import bp as progress_bp
    from .routes.quizzes import bp as quizzes_bp

    register_error_handlers(app)
    register_jwt_callbacks(jwt)

    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(users_bp, url_prefix="/api/users")
    app.register_blueprint(courses_bp, url_prefix="/api/courses")
    app.register_blueprint(enrollments_bp, url_prefix="/api/enrollments")
    app.register_blueprint(progress_bp, url_prefix="/api/progress")
    app.register_blueprint(quizzes_bp, url_prefix="/api/quizzes")

    with app.app_context():
        db.create_all()

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    logger.info("coursehub started (db=%s)", app.config["SQLALCHEMY_DATABASE_URI"])
    return app
