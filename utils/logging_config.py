"""
Logging setup for LogiTx

Every record carries the request's correlation id and, once a route has
resolved it, the company acting on the request. Production emits one JSON
object per line; development gets a readable single-line format.
"""

import os
import sys
import json
import time
import uuid
import logging
from datetime import datetime, timezone
from typing import Any, Dict
from flask import has_request_context, request, g

REQUEST_LOGGER = 'logitx.requests'
SLOW_REQUEST_SECONDS = 5.0
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

DEV_FORMAT = '%(asctime)s %(levelname)-7s %(name)s [%(correlation_id)s|%(company)s] %(message)s'

# Attributes every LogRecord has; anything else was passed through ``extra``
_STANDARD_ATTRIBUTES = set(vars(logging.makeLogRecord({}))) | {
    'message', 'asctime', 'correlation_id', 'company', 'user_id'
}


class RequestContextFilter(logging.Filter):
    """Stamp records with correlation id, user and company of the current request"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = '-'
        record.company = '-'
        record.user_id = None
        if has_request_context():
            record.correlation_id = getattr(g, 'correlation_id', '-')
            record.company = getattr(g, 'current_company', None) or '-'
            record.user_id = getattr(g, 'current_user_id', None)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON document per record for log shippers"""

    def __init__(self, environment: str = None):
        super().__init__()
        self.environment = environment or os.environ.get('FLASK_ENV', 'development')

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            'ts': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'severity': record.levelname,
            'logger': record.name,
            'msg': record.getMessage(),
            'service': 'logitx',
            'env': self.environment,
            'correlation_id': getattr(record, 'correlation_id', '-'),
        }

        company = getattr(record, 'company', '-')
        if company != '-':
            entry['company'] = company
        if getattr(record, 'user_id', None):
            entry['user_id'] = record.user_id

        if has_request_context():
            entry['http'] = {'method': request.method, 'path': request.path,
                             'client': request.remote_addr}

        if record.exc_info and record.exc_info[0]:
            entry['error'] = {
                'kind': record.exc_info[0].__name__,
                'detail': str(record.exc_info[1]),
                'stack': self.formatException(record.exc_info),
            }

        extras = {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRIBUTES}
        if extras:
            entry['fields'] = extras

        if record.levelno >= logging.ERROR:
            entry['source'] = f"{record.pathname}:{record.lineno} in {record.funcName}"

        return json.dumps(entry, ensure_ascii=False, default=str)


def _resolve_level() -> str:
    level = os.environ.get('LOG_LEVEL', 'INFO').upper()
    return level if level in LOG_LEVELS else 'INFO'


def setup_logging(app=None) -> None:
    """
    Install handlers on the root logger.

    Environment:
        LOG_LEVEL: root level, INFO by default
        USE_JSON_LOGGING: 'true' forces JSON output (always on in production)
        LOG_FILE: optional path of an additional log file
    """
    level = _resolve_level()
    production = os.environ.get('FLASK_ENV') == 'production'
    as_json = production or os.environ.get('USE_JSON_LOGGING', 'false').lower() == 'true'

    formatter = JSONFormatter() if as_json else logging.Formatter(DEV_FORMAT)
    context_filter = RequestContextFilter()

    handlers = [logging.StreamHandler(sys.stdout)]
    log_file = os.environ.get('LOG_FILE')
    if log_file:
        os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root.addHandler(handler)

    if production:
        for noisy in ('werkzeug', 'urllib3', 'google', 'sqlalchemy.engine'):
            logging.getLogger(noisy).setLevel(logging.WARNING)

    if app:
        app.logger.info(f"Logging ready: level={level}, json={as_json}, file={log_file or 'none'}")


def log_request_start():
    """before_request hook: start the timer and pick up or mint a correlation id"""
    g.request_started = time.perf_counter()
    g.correlation_id = request.headers.get('X-Request-ID') or uuid.uuid4().hex[:16]


def log_request_end(response):
    """after_request hook: log status and latency, echo the correlation id"""
    started = getattr(g, 'request_started', None)
    if started is None:
        return response

    elapsed = time.perf_counter() - started
    if response.status_code >= 500:
        level = logging.ERROR
    elif response.status_code >= 400 or elapsed > SLOW_REQUEST_SECONDS:
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.getLogger(REQUEST_LOGGER).log(
        level,
        f"{request.method} {request.path} -> {response.status_code} in {elapsed * 1000:.1f}ms",
        extra={'status_code': response.status_code, 'duration_ms': round(elapsed * 1000, 2)}
    )
    response.headers['X-Request-ID'] = g.correlation_id
    return response
