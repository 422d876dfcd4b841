import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

DETAILED_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
SIMPLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class LoggerService:
    """Centralized logging service for the application."""

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize logging for the Flask app."""
        self.app = app

        logs_dir = app.config.get('LOG_DIR') or os.path.join(os.getcwd(), 'logs')
        os.makedirs(logs_dir, exist_ok=True)

        numeric_level = self._level(app.config.get('LOG_LEVEL', 'INFO'))
        detailed_formatter = logging.Formatter(DETAILED_FORMAT)

        root_logger = logging.getLogger()
        root_logger.setLevel(numeric_level)

        # Remove existing handlers to avoid duplicates
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        app_handler = RotatingFileHandler(
            os.path.join(logs_dir, 'app.log'),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        app_handler.setLevel(numeric_level)
        app_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(app_handler)

        error_handler = RotatingFileHandler(
            os.path.join(logs_dir, 'error.log'),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(error_handler)

        # Console handler for development
        if app.config.get('DEBUG', False):
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.DEBUG)
            console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
            root_logger.addHandler(console_handler)

        # Route Flask's logger through the root configuration
        app.logger.handlers = []
        app.logger.propagate = True

        app.logger.info('Logging system initialized')

    def configure(self, level='INFO'):
        """Console-only logging, used by the command line."""
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
        root_logger.addHandler(console_handler)
        root_logger.setLevel(self._level(level))

    @staticmethod
    def _level(name):
        return getattr(logging, str(name).upper(), logging.INFO)

    @staticmethod
    def get_logger(name='app'):
        """Get a logger instance."""
        return logging.getLogger(name)

    @staticmethod
    def log_error(error, context=None):
        """Log errors with context information."""
        logger = logging.getLogger('app')

        error_data = {
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

        if context:
            error_data['context'] = context

        logger.error(f"Error occurred: {error}", extra=error_data, exc_info=True)


# Global logger service instance
logger_service = LoggerService()
