import json
import logging
import datetime

from app.config.settings import settings


class StructuredLogger:

    def __init__(self, logger_name='StructuredLogger', level='INFO'):
        self.logger = logging.getLogger(logger_name)
        self.logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
        self.logger.propagate = False

        # uvicorn reloads and repeated imports must not stack handlers
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter('%(message)s')
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def _log(self, level, message, **kwargs):
        exc = kwargs.pop('exc_info', None)
        if isinstance(exc, BaseException):
            kwargs.setdefault('exc_type', type(exc).__name__)
            kwargs.setdefault('error', str(exc))

        log_entry = {
            'timestamp': datetime.datetime.now(datetime.timezone.utc).isoformat(),
            'level': level.upper(),
            'service': settings.SERVICE_NAME,
            'message': message,
            **kwargs
        }
        json_log = json.dumps(log_entry, default=str)
        getattr(self.logger, level)(json_log)  # Invoke the method corresponding to the level

    def info(self, message, **kwargs):
        self._log('info', message, **kwargs)

    def warning(self, message, **kwargs):
        self._log('warning', message, **kwargs)

    def error(self, message, **kwargs):
        self._log('error', message, **kwargs)

    def debug(self, message, **kwargs):
        self._log('debug', message, **kwargs)


app_logger = StructuredLogger('MyListLogger', settings.LOG_LEVEL)
