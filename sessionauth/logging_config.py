import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

import boto3
from botocore.exceptions import ClientError

_ALREADY_EXISTS = {"ResourceAlreadyExistsException", "ResourceAlreadyExists"}


class JsonFormatter(logging.Formatter):
    """Serialize log records into one JSON object per line."""

    _EXTRA_FIELDS = (
        "request_id",
        "user",
        "token_id",
        "operation",
        "status",
        "error_code",
    )

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "message": record.getMessage(),
            "level": record.levelname,
            "logger": record.name,
        }

        for field in self._EXTRA_FIELDS:
            payload[field] = getattr(record, field, None)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


class CloudWatchLogsHandler(logging.Handler):
    """Ship formatted records to a CloudWatch Logs stream using boto3."""

    def __init__(
        self,
        *,
        log_group: str,
        log_stream: str,
        region_name: Optional[str] = None,
    ) -> None:
        super().__init__()
        self.client = boto3.client("logs", region_name=region_name)
        self.log_group = log_group
        self.log_stream = log_stream
        self._create_if_missing(self.client.create_log_group, logGroupName=log_group)
        self._create_if_missing(
            self.client.create_log_stream, logGroupName=log_group, logStreamName=log_stream
        )

    @staticmethod
    def _create_if_missing(create, **kwargs) -> None:
        try:
            create(**kwargs)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") not in _ALREADY_EXISTS:
                raise

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - network interaction
        try:
            self.client.put_log_events(
                logGroupName=self.log_group,
                logStreamName=self.log_stream,
                logEvents=[{"timestamp": int(record.created * 1000), "message": self.format(record)}],
            )
        except ClientError:
            self.handleError(record)


def _determine_level(log_level: int) -> int:
    if log_level == 0:
        return logging.CRITICAL
    if log_level == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging() -> None:
    """Configure the root logger from LOG_FILE, LOG_LEVEL and optional CloudWatch settings."""
    log_file = os.environ.get("LOG_FILE", "sessionauth.log")
    try:
        log_level = int(os.environ.get("LOG_LEVEL", "0"))
    except ValueError:
        raise SystemExit(f"Invalid LOG_LEVEL: {os.environ.get('LOG_LEVEL')!r}")

    parent = os.path.dirname(os.path.abspath(log_file)) or "."
    if not os.path.isdir(parent):
        raise SystemExit(f"Invalid log file directory: {parent}")

    level = _determine_level(log_level)
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)

    # Level 0 only touches the file.
    if log_level == 0:
        try:
            with open(log_file, "a", encoding="utf-8"):
                pass
        except OSError:
            raise SystemExit(f"Unable to open log file: {log_file}")
        return

    formatter = JsonFormatter()

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    cw_log_group = os.environ.get("CLOUDWATCH_LOG_GROUP")
    cw_log_stream = os.environ.get("CLOUDWATCH_LOG_STREAM")
    if cw_log_group and cw_log_stream:
        region_name = os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION")
        try:
            cw_handler = CloudWatchLogsHandler(
                log_group=cw_log_group,
                log_stream=cw_log_stream,
                region_name=region_name,
            )
        except ClientError as exc:
            raise SystemExit(f"Unable to configure CloudWatch logging: {exc}") from exc

        cw_handler.setLevel(level)
        cw_handler.setFormatter(formatter)
        root_logger.addHandler(cw_handler)
