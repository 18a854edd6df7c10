import logging
import sys
import json
import os
import gzip
import shutil
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from typing import Optional

from allocator_config import AppConfig, LoggingConfig
from .context import get_current_run

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename', 'module',
    'lineno', 'funcName', 'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'taskName', 'getMessage', 'exc_info', 'exc_text',
    'stack_info', 'message', 'run_id', 'user_id', 'portfolio_id',
}


class CompressingTimedRotatingFileHandler(TimedRotatingFileHandler):
    """TimedRotatingFileHandler that compresses rotated files"""

    def doRollover(self):
        """Override to add compression after rotation"""
        super().doRollover()

        # Rotated files carry a timestamp suffix after the base name
        dir_name, base_name = os.path.split(self.baseFilename)

        try:
            for file_name in os.listdir(dir_name):
                if file_name.startswith(base_name) and not file_name.endswith('.gz') and file_name != base_name:
                    full_path = os.path.join(dir_name, file_name)
                    with open(full_path, 'rb') as f_in:
                        with gzip.open(f'{full_path}.gz', 'wb') as f_out:
                            shutil.copyfileobj(f_in, f_out)
                    os.remove(full_path)
        except OSError as e:
            # Compression failure must not break the rollover itself
            print(f"Error during log compression: {e}", file=sys.stderr)


class StructuredFormatter(logging.Formatter):
    """Formatter for text or JSON records, stamped with the current run context"""

    def __init__(self, output_format: str = 'text'):
        super().__init__()
        self.output_format = output_format

    def format(self, record):
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage()
        }

        run = get_current_run()
        if run is not None:
            log_data['run_id'] = run.run_id
            if run.user_id:
                log_data['user_id'] = run.user_id
            if run.portfolio_id:
                log_data['portfolio_id'] = run.portfolio_id

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value.isoformat() if isinstance(value, datetime) else value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        if self.output_format == 'json':
            return json.dumps(log_data, default=str)

        base_msg = f"{log_data['timestamp']} - {log_data['logger']} - {log_data['level']} - {log_data['message']}"
        if 'run_id' in log_data:
            base_msg += f" [run_id={log_data['run_id']}]"
        if 'portfolio_id' in log_data:
            base_msg += f" [portfolio_id={log_data['portfolio_id']}]"
        if 'exception' in log_data:
            base_msg += f"\n{log_data['exception']}"
        return base_msg


def configure_root_logger(config: Optional[AppConfig] = None) -> logging.Logger:
    """Configure the root logger to use structured formatting for all logs"""
    logging_config = config.logging if config else LoggingConfig()
    root_logger = logging.getLogger()

    # Clear existing handlers to avoid duplicates
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, logging_config.level.upper()))

    formatter = StructuredFormatter(logging_config.format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if logging_config.log_dir:
        os.makedirs(logging_config.log_dir, exist_ok=True)
        file_handler = CompressingTimedRotatingFileHandler(
            filename=os.path.join(logging_config.log_dir, 'contribution-allocator.log'),
            when='midnight',
            interval=1,
            backupCount=logging_config.backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    return root_logger
