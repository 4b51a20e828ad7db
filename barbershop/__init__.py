from flask import Flask
from flask_cors import CORS

from .config import Config
from .extensions import db
from .routes import bp
from .routes_admin import bp_admin


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    app.config.from_object(Config)
    app.config.from_envvar("APP_SETTINGS", silent=True)
    if isinstance(config_object, dict):
        app.config.from_mapping(config_object)
    elif config_object:
        app.config.from_object(config_object)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)

    CORS(app,
         origins=app.config["CORS_ORIGINS"],
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )

    app.register_blueprint(bp)
    app.register_blueprint(bp_admin)

    return app
