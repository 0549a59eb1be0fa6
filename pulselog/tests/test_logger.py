"""
Unit tests for pulselog.
"""

import io
import json
import logging
import sys
import uuid

import pytest

from pulselog.logger import JSONFormatter, get_logger, setup_logging


def make_record(level=logging.INFO, msg='Test message', exc_info=None, **kwargs):
    return logging.LogRecord(
        name='pulse_hub.store',
        level=level,
        pathname='/path/to/store.py',
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
        **kwargs
    )


def unique_name(prefix):
    return f'{prefix}_{uuid.uuid4().hex[:8]}'


class TestJSONFormatter:
    """Test JSONFormatter"""

    def test_format_basic_log(self):
        data = json.loads(JSONFormatter(hostname='collector-1').format(make_record()))

        assert data['timestamp'].endswith('Z')
        assert data['level'] == 'INFO'
        assert data['logger'] == 'pulse_hub.store'
        assert data['host'] == 'collector-1'
        assert data['message'] == 'Test message'
        assert 'context' not in data

    def test_format_with_context(self):
        record = make_record(msg='Evicted expired samples')
        record.context = {'server_name': 'web-1', 'deleted': 3}

        data = json.loads(JSONFormatter().format(record))

        assert data['context'] == {'server_name': 'web-1', 'deleted': 3}

    def test_format_with_exception(self):
        try:
            raise ValueError('Test error')
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(make_record(level=logging.ERROR, exc_info=exc_info)))

        assert data['exception']['type'] == 'ValueError'
        assert data['exception']['message'] == 'Test error'
        assert 'Traceback' in data['exception']['traceback']

    def test_format_debug_includes_source(self):
        record = make_record(level=logging.DEBUG, func='append')

        data = json.loads(JSONFormatter().format(record))

        assert data['source'] == {'file': '/path/to/store.py', 'line': 42, 'function': 'append'}

    def test_format_info_no_source(self):
        data = json.loads(JSONFormatter().format(make_record()))
        assert 'source' not in data

    def test_non_serializable_context(self):
        record = make_record()
        record.context = {'path': object()}

        data = json.loads(JSONFormatter().format(record))

        assert data['context']['path'].startswith('<object')


class TestGetLogger:
    """Test get_logger"""

    def test_returns_configured_logger(self):
        name = unique_name('pulse_test')
        logger = get_logger(name)

        assert isinstance(logger, logging.Logger)
        assert logger.name == name
        assert logger.level == logging.INFO
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_custom_level(self):
        assert get_logger(unique_name('pulse_test'), level=logging.DEBUG).level == logging.DEBUG

    def test_no_duplicate_handlers(self):
        name = unique_name('pulse_dup')
        first = len(get_logger(name).handlers)
        second = len(get_logger(name).handlers)

        assert first == second == 1

    def test_file_output(self, tmp_path):
        log_file = str(tmp_path / 'pulse.log')
        logger = get_logger(unique_name('pulse_file'), log_file=log_file)

        logger.info('File log message', extra={'context': {'server_name': 'web-1'}})
        for handler in logger.handlers:
            handler.flush()

        data = json.loads((tmp_path / 'pulse.log').read_text().strip())
        assert data['message'] == 'File log message'
        assert data['context']['server_name'] == 'web-1'

        # same file again does not add a second handler
        assert len(get_logger(logger.name, log_file=log_file).handlers) == 2

    def test_plain_text_output(self):
        logger = get_logger(unique_name('pulse_plain'), use_json=False)
        stream = io.StringIO()
        logger.handlers[0].setStream(stream)

        logger.info('Plain text message')

        output = stream.getvalue()
        assert 'INFO' in output and 'Plain text message' in output
        with pytest.raises(json.JSONDecodeError):
            json.loads(output)


class TestSetupLogging:
    """Test setup_logging"""

    def test_reads_level_and_format_from_env(self, monkeypatch):
        name = unique_name('pulse_env')
        monkeypatch.setenv('PULSE_LOG_LEVEL', 'debug')
        monkeypatch.setenv('PULSE_LOG_FORMAT', 'text')

        setup_logging(names=(name,))

        logger = logging.getLogger(name)
        assert logger.level == logging.DEBUG
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_defaults_to_json_info(self, monkeypatch):
        name = unique_name('pulse_default')
        monkeypatch.delenv('PULSE_LOG_LEVEL', raising=False)
        monkeypatch.delenv('PULSE_LOG_FORMAT', raising=False)

        setup_logging(names=(name,))

        logger = logging.getLogger(name)
        assert logger.level == logging.INFO
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_unknown_level(self):
        with pytest.raises(ValueError, match='Unknown log level'):
            setup_logging(names=(unique_name('pulse_bad'),), level='LOUD')

    def test_child_loggers_inherit(self):
        name = unique_name('pulse_parent')
        setup_logging(names=(name,), level='WARNING')

        assert logging.getLogger(f'{name}.retention').getEffectiveLevel() == logging.WARNING
