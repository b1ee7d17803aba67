"""Flask application factory."""
import logging
import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from backoffice.database import init_db


def _configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    app.logger.setLevel(level)


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    _configure_logging(app)

    # Error tracking in production
    sentry_dsn = app.config.get('SENTRY_DSN')
    if sentry_dsn and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Prometheus metrics instrumentation
    from backoffice.blueprints.metrics import setup_metrics_instrumentation, stock_errors_total
    setup_metrics_instrumentation(app)

    # Initialize database
    init_db(app)

    # Error Handlers
    from backoffice.exceptions import BackofficeError, InsufficientStockError

    @app.errorhandler(BackofficeError)
    def handle_backoffice_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"{type(error).__name__} [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"{type(error).__name__} [{error.status_code}]: {error.message}")

        if isinstance(error, InsufficientStockError):
            stock_errors_total.inc()

        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'status': 'error', 'message': error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        import traceback
        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from backoffice.blueprints.quotes import quotes_bp
    from backoffice.blueprints.invoices import invoices_bp
    from backoffice.blueprints.products import products_bp
    from backoffice.blueprints.metrics import metrics_bp

    app.register_blueprint(quotes_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from backoffice.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"Back office started (env={app.config.get('ENV')}, strict_transitions={app.config.get('STRICT_STATUS_TRANSITIONS')})")

    return app
