import logging
from flask import Flask, jsonify, request
from sqlalchemy import event
from werkzeug.exceptions import HTTPException

from errors import ServiceError, ServerError
from models import db
from routes import api
from utils import DATABASE_URL, JWT_SECRET, LOG_LEVEL, PORT

logger = logging.getLogger("showtime-service")


def _enable_sqlite_foreign_keys(engine):
    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_app(config=None):
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    app = Flask(__name__)

    app.config['SQLALCHEMY_DATABASE_URI'] = DATABASE_URL
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {"pool_pre_ping": True}
    app.config['JWT_SECRET'] = JWT_SECRET
    if config:
        app.config.update(config)

    db.init_app(app)

    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            _enable_sqlite_foreign_keys(db.engine)

    app.register_blueprint(api)

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.errorhandler(ServiceError)
    def handle_service_error(exc):
        return jsonify(exc.to_dict()), exc.status

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({"ok": False, "kind": exc.name, "error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        err = ServerError("Server error")
        return jsonify(err.to_dict()), err.status

    @app.after_request
    def log_request(response):
        ip = request.headers.get("X-Forwarded-For") or request.remote_addr or ""
        logger.info("Method: %s | URL: %s | Status Code: %s | IP Address: %s",
                    request.method, request.full_path.rstrip("?"), response.status_code, ip)
        return response

    return app


if __name__ == "__main__":
    app = create_app()

    with app.app_context():
        try:
            db.create_all()
        except Exception as e:
            logger.error(f"DB creation error : {e}")

    app.run(host="0.0.0.0", port=int(PORT), debug=False)
