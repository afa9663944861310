#!/usr/bin/env python3
"""qbitun - qBittorrent / Gluetun forwarded port synchronization

Keeps qBittorrent's listening port in step with the port forwarded by a
Gluetun VPN sidecar. Gluetun renews its port-forwarding lease on its own
schedule, so the port can change at any time; qbitun polls Gluetun, reads
qBittorrent's preferences and writes the new port only when they differ.

Environment variables:

    Port Source (Gluetun control server):
        GLUETUN_URL            Forwarded port endpoint
                               (default: http://localhost:8000/v1/openvpn/portforwarded)
                               Plain-text bodies ("51413") and JSON bodies
                               ({"port": 51413}) are both accepted.
        GLUETUN_API_KEY        Sent as X-API-Key when set (optional, secret)

    Port Sink (qBittorrent WebUI):
        QBITTORRENT_URL        WebUI base URL (default: http://localhost:8080)
        QBITTORRENT_USERNAME   WebUI username (default: admin)
        QBITTORRENT_PASSWORD   WebUI password (required, secret)

    Runtime:
        SYNC_MODE              "once" or "watch" (polling loop) (default: watch)
        SYNC_INTERVAL_SECONDS  Seconds between passes in watch mode (default: 300)
        HTTP_TIMEOUT_SECONDS   Timeout for every HTTP request (default: 10)
        LOG_LEVEL              DEBUG, INFO, WARNING, ERROR (default: INFO)
        LOG_FORMAT             "text" or "json" (default: text)
        QBITUN_CONFIG_PATH     Optional YAML file with the same settings as
                               lower-case keys. Environment values win.
                               Example:
                                 qbittorrent_url: "http://qbittorrent:8080"
                                 qbittorrent_username: "admin"
                                 gluetun_url: "http://gluetun:8000/v1/portforward"
                                 sync_interval_seconds: 120

Secrets are removed from the process environment once read and are never
logged.
"""

from __future__ import annotations

import json
import logging
import math
import os
import signal
import sys
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Tuple

import requests
import yaml
from dotenv import dotenv_values

logger = logging.getLogger(__name__)

MIN_PORT = 0
MAX_PORT = 65535

# =============================================================================
# Errors
# =============================================================================


class PortSyncError(Exception):
    """Base class for every failure a pass can report."""

    kind = "PortSyncError"


class SourceError(PortSyncError):
    kind = "SourceError"


class SourceUnreachable(SourceError):
    kind = "SourceUnreachable"


class SourceMalformed(SourceError):
    kind = "SourceMalformed"


class SourceUnauthorized(SourceError):
    kind = "SourceUnauthorized"


class AuthenticationError(PortSyncError):
    kind = "AuthenticationError"


class InvalidCredentials(AuthenticationError):
    kind = "InvalidCredentials"


class AccountLocked(AuthenticationError):
    """qBittorrent answers 403 on login after too many failed attempts."""

    kind = "AccountLocked"


class SinkError(PortSyncError):
    kind = "SinkError"


class SinkUnreachable(SinkError):
    kind = "SinkUnreachable"


class SinkUnauthorized(SinkError):
    kind = "SinkUnauthorized"


class SinkFieldMissing(SinkError):
    kind = "SinkFieldMissing"


class SinkWriteFailed(SinkError):
    kind = "SinkWriteFailed"


class ConfigurationInvalid(PortSyncError):
    kind = "ConfigurationInvalid"

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


# =============================================================================
# Credentials
# =============================================================================


class Secret:
    """A password or API key that must never reach a log line."""

    REDACTED = "********"

    __slots__ = ("_value",)

    def __init__(self, value: Optional[str]):
        self._value = value or None

    def reveal(self) -> str:
        if self._value is None:
            raise ValueError("secret has been cleared")
        return self._value

    def clear(self) -> None:
        self._value = None

    def __bool__(self) -> bool:
        return self._value is not None

    def __repr__(self) -> str:
        return f"Secret('{self.REDACTED}')"

    def __str__(self) -> str:
        return self.REDACTED


# =============================================================================
# Configuration
# =============================================================================

DEFAULTS: Dict[str, str] = {
    "GLUETUN_URL": "http://localhost:8000/v1/openvpn/portforwarded",
    "QBITTORRENT_URL": "http://localhost:8080",
    "QBITTORRENT_USERNAME": "admin",
    "SYNC_MODE": "watch",
    "SYNC_INTERVAL_SECONDS": "300",
    "HTTP_TIMEOUT_SECONDS": "10",
    "LOG_LEVEL": "INFO",
    "LOG_FORMAT": "text",
}

SECRET_KEYS = ("QBITTORRENT_PASSWORD", "GLUETUN_API_KEY")
SYNC_MODES = ("once", "watch")
LOG_FORMATS = ("text", "json")


@dataclass(frozen=True)
class Config:
    """Endpoint configuration, built once at startup."""

    source_url: str
    sink_url: str
    sink_username: str
    sink_password: Secret
    source_api_key: Secret = field(default_factory=lambda: Secret(None))
    interval_seconds: float = 300.0
    timeout_seconds: float = 10.0
    sync_mode: str = "watch"
    log_level: str = "INFO"
    log_format: str = "text"

    def describe(self) -> Dict[str, Any]:
        """Non-secret settings, safe to log."""
        return {
            "source_url": self.source_url,
            "source_api_key": "set" if self.source_api_key else "unset",
            "sink_url": self.sink_url,
            "sink_username": self.sink_username,
            "interval_seconds": self.interval_seconds,
            "timeout_seconds": self.timeout_seconds,
            "sync_mode": self.sync_mode,
        }

    def clear_secrets(self) -> None:
        self.sink_password.clear()
        self.source_api_key.clear()


def _load_yaml_settings(path: str) -> Dict[str, str]:
    """Read optional YAML settings; keys are upper-cased to match env names."""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationInvalid([f"Failed to read config file {path}: {e}"])

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationInvalid([f"Config file {path} must contain a mapping"])
    return {str(k).upper(): str(v) for k, v in data.items() if v is not None}


def _parse_number(
    settings: Mapping[str, str], key: str, minimum: float, errors: List[str]
) -> float:
    raw = settings.get(key, DEFAULTS[key]).strip()
    try:
        value = float(raw)
    except ValueError:
        errors.append(f"{key} must be a number, got '{raw}'")
        return float(DEFAULTS[key])
    if not math.isfinite(value) or value > threading.TIMEOUT_MAX:
        errors.append(f"{key} must be a finite number of seconds, got {raw}")
    elif value < minimum:
        errors.append(f"{key} must be at least {minimum:g}, got {raw}")
    return value


def _check_url(settings: Mapping[str, str], key: str, errors: List[str]) -> str:
    url = settings.get(key, DEFAULTS.get(key, "")).strip()
    if not url:
        errors.append(f"{key} is required")
    elif not url.startswith(("http://", "https://")):
        errors.append(f"{key} must start with http:// or https://")
    return url


def load_config(
    environ: Optional[MutableMapping[str, str]] = None, dotenv_path: Optional[str] = ".env"
) -> Config:
    """Build the configuration from defaults, YAML file, .env file and environment.

    Secret values are popped from ``environ`` once read. Raises
    ConfigurationInvalid listing every problem found.
    """
    if environ is None:
        environ = os.environ

    settings: Dict[str, str] = {}
    config_path = environ.get("QBITUN_CONFIG_PATH", "").strip()
    if config_path:
        settings.update(_load_yaml_settings(config_path))
    if dotenv_path:
        settings.update({k: v for k, v in dotenv_values(dotenv_path).items() if v is not None})
    settings.update({k: v for k, v in environ.items() if k not in SECRET_KEYS})

    secrets: Dict[str, Secret] = {}
    for key in SECRET_KEYS:
        value = environ.pop(key, None)
        if value is None:
            value = settings.pop(key, None)
        settings.pop(key, None)
        secrets[key] = Secret(value)

    errors: List[str] = []
    source_url = _check_url(settings, "GLUETUN_URL", errors)
    sink_url = _check_url(settings, "QBITTORRENT_URL", errors).rstrip("/")

    username = settings.get("QBITTORRENT_USERNAME", DEFAULTS["QBITTORRENT_USERNAME"]).strip()
    if not username:
        errors.append("QBITTORRENT_USERNAME is required")
    if not secrets["QBITTORRENT_PASSWORD"]:
        errors.append("QBITTORRENT_PASSWORD is required")

    interval = _parse_number(settings, "SYNC_INTERVAL_SECONDS", 1, errors)
    timeout = _parse_number(settings, "HTTP_TIMEOUT_SECONDS", 0.1, errors)

    sync_mode = settings.get("SYNC_MODE", DEFAULTS["SYNC_MODE"]).lower().strip()
    if sync_mode not in SYNC_MODES:
        errors.append(f"Invalid SYNC_MODE: {sync_mode}. Use 'once' or 'watch'")

    log_format = settings.get("LOG_FORMAT", DEFAULTS["LOG_FORMAT"]).lower().strip()
    if log_format not in LOG_FORMATS:
        errors.append(f"Invalid LOG_FORMAT: {log_format}. Use 'text' or 'json'")

    if errors:
        for secret in secrets.values():
            secret.clear()
        raise ConfigurationInvalid(errors)

    return Config(
        source_url=source_url,
        sink_url=sink_url,
        sink_username=username,
        sink_password=secrets["QBITTORRENT_PASSWORD"],
        source_api_key=secrets["GLUETUN_API_KEY"],
        interval_seconds=interval,
        timeout_seconds=timeout,
        sync_mode=sync_mode,
        log_level=settings.get("LOG_LEVEL", DEFAULTS["LOG_LEVEL"]).upper().strip(),
        log_format=log_format,
    )


# =============================================================================
# Logging Setup
# =============================================================================


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with any ``extra={"context": ...}`` merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            entry.update(context)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "text") -> None:
    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%Y-%m-%d %H:%M:%S")
        )
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO), handlers=[handler], force=True
    )


# =============================================================================
# Port Source Interface and Implementations
# =============================================================================


class PayloadFormat(Enum):
    """Shape of a port source response body."""

    PLAIN_TEXT = "plain_text"
    JSON = "json"


def _coerce_port(value: Any) -> int:
    if isinstance(value, bool):
        raise SourceMalformed(f"Port must be a number, got {value!r}")
    if isinstance(value, str):
        text = value.strip()
        if not text.isascii() or not text.isdigit():
            raise SourceMalformed(f"Port is not an unsigned integer: {text[:40]!r}")
        value = int(text)
    if not isinstance(value, int):
        raise SourceMalformed(f"Port must be an integer, got {value!r}")
    if not MIN_PORT <= value <= MAX_PORT:
        raise SourceMalformed(f"Port {value} is outside {MIN_PORT}-{MAX_PORT}")
    return value


def decode_port_payload(body: str) -> Tuple[PayloadFormat, Any]:
    """Classify a response body as a JSON object or a plain-text scalar.

    Structured decoding is attempted first; anything that is not a JSON object
    falls back to the trimmed text.
    """
    text = body.strip()
    try:
        payload = json.loads(text)
    except ValueError:
        return PayloadFormat.PLAIN_TEXT, text
    if isinstance(payload, dict):
        if "port" not in payload:
            raise SourceMalformed("JSON body has no 'port' field")
        return PayloadFormat.JSON, payload["port"]
    return PayloadFormat.PLAIN_TEXT, text


def parse_forwarded_port(body: str) -> int:
    _, value = decode_port_payload(body)
    return _coerce_port(value)


class PortSource(ABC):
    """Abstract base class for services that report a forwarded port."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the source name for logging."""
        pass

    @abstractmethod
    def fetch_forwarded_port(self) -> int:
        """Return the currently forwarded port or raise a SourceError."""
        pass

    def close(self) -> None:
        """Release any held connections."""
        pass


class GluetunPortSource(PortSource):
    """Gluetun control server, either the plain-text or the JSON endpoint."""

    def __init__(self, url: str, api_key: Optional[Secret] = None, timeout: float = 10.0):
        self._url = url
        self._api_key = api_key or Secret(None)
        self._timeout = timeout
        self._session = requests.Session()

    @property
    def name(self) -> str:
        return "Gluetun"

    def fetch_forwarded_port(self) -> int:
        headers = {}
        if self._api_key:
            headers["X-API-Key"] = self._api_key.reveal()

        logger.debug(f"Requesting forwarded port from {self._url}")
        try:
            response = self._session.get(self._url, headers=headers, timeout=self._timeout)
        except requests.exceptions.RequestException as e:
            raise SourceUnreachable(f"Failed to reach {self.name}: {e}") from e

        if response.status_code in (401, 403):
            raise SourceUnauthorized(f"{self.name} rejected the request ({response.status_code})")
        if not response.ok:
            raise SourceUnreachable(f"{self.name} returned HTTP {response.status_code}")

        payload_format, value = decode_port_payload(response.text)
        port = _coerce_port(value)
        logger.debug(f"{self.name} reported port {port} ({payload_format.value} body)")
        return port

    def close(self) -> None:
        self._session.close()


# =============================================================================
# qBittorrent Session and Port Sink
# =============================================================================


class SinkSession:
    """Authenticated qBittorrent session; the SID cookie lives in ``http``."""

    def __init__(self, http: requests.Session):
        self.http = http
        self.valid = True

    def invalidate(self) -> None:
        self.valid = False
        self.http.close()


class QBittorrentSessionClient:
    """Logs in to the qBittorrent WebUI and hands out reusable sessions."""

    SUCCESS_BODY = "Ok."

    def __init__(self, url: str, username: str, password: Secret, timeout: float = 10.0):
        self._url = url.rstrip("/")
        self._username = username
        self._password = password
        self._timeout = timeout

    def login(self) -> SinkSession:
        http = requests.Session()
        try:
            try:
                response = http.post(
                    f"{self._url}/api/v2/auth/login",
                    data={"username": self._username, "password": self._password.reveal()},
                    headers={"Referer": self._url},
                    timeout=self._timeout,
                )
            except requests.exceptions.RequestException as e:
                raise SinkUnreachable(f"Failed to reach qBittorrent: {e}") from e

            if response.status_code == 403:
                raise AccountLocked("qBittorrent refused login (403), too many failed attempts")
            if not response.ok:
                raise InvalidCredentials(f"qBittorrent login returned HTTP {response.status_code}")
            if response.text.strip() != self.SUCCESS_BODY:
                raise InvalidCredentials("qBittorrent rejected the username or password")
        except PortSyncError:
            http.close()
            raise

        logger.debug(f"Authenticated with qBittorrent as {self._username}")
        return SinkSession(http)

    def ensure_authenticated(self, session: Optional[SinkSession]) -> SinkSession:
        if session is not None and session.valid:
            return session
        return self.login()


class QBittorrentPortSink:
    """Reads and writes qBittorrent's ``listen_port`` preference."""

    FIELD = "listen_port"

    def __init__(self, url: str, timeout: float = 10.0):
        self._url = url.rstrip("/")
        self._timeout = timeout

    def get_listening_port(self, session: SinkSession) -> int:
        try:
            response = session.http.get(
                f"{self._url}/api/v2/app/preferences", timeout=self._timeout
            )
        except requests.exceptions.RequestException as e:
            raise SinkUnreachable(f"Failed to reach qBittorrent: {e}") from e

        if response.status_code in (401, 403):
            raise SinkUnauthorized(f"qBittorrent rejected the session ({response.status_code})")
        if not response.ok:
            raise SinkUnreachable(f"qBittorrent preferences returned HTTP {response.status_code}")

        try:
            prefs = response.json()
        except ValueError as e:
            raise SinkFieldMissing(f"qBittorrent preferences are not JSON: {e}") from e

        port = prefs.get(self.FIELD) if isinstance(prefs, dict) else None
        if isinstance(port, bool) or not isinstance(port, int):
            raise SinkFieldMissing(f"'{self.FIELD}' not found in qBittorrent preferences")
        return port

    def set_listening_port(self, session: SinkSession, port: int) -> None:
        data = {"json": json.dumps({self.FIELD: port})}
        try:
            response = session.http.post(
                f"{self._url}/api/v2/app/setPreferences", data=data, timeout=self._timeout
            )
        except requests.exceptions.RequestException as e:
            raise SinkWriteFailed(f"Failed to set qBittorrent port: {e}") from e

        if not response.ok:
            if response.status_code in (401, 403):
                session.invalidate()
            raise SinkWriteFailed(f"qBittorrent setPreferences returned HTTP {response.status_code}")


# =============================================================================
# Reconciler
# =============================================================================


class OutcomeKind(Enum):
    SYNCHRONIZED = "Synchronized"
    UPDATED = "Updated"
    SOURCE_UNAVAILABLE = "SourceUnavailable"
    AUTHENTICATION_FAILED = "AuthenticationFailed"
    SINK_UNAVAILABLE = "SinkUnavailable"
    SINK_WRITE_FAILED = "SinkWriteFailed"


@dataclass(frozen=True)
class SyncOutcome:
    """Result of one pass; used for logging only."""

    kind: OutcomeKind
    stage: str = ""
    source_port: Optional[int] = None
    sink_port: Optional[int] = None
    error: Optional[PortSyncError] = None

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.SYNCHRONIZED, OutcomeKind.UPDATED)

    def context(self) -> Dict[str, Any]:
        ctx: Dict[str, Any] = {"outcome": self.kind.value, "stage": self.stage}
        if self.error is not None:
            ctx["error_kind"] = self.error.kind
        if self.source_port is not None:
            ctx["source_port"] = self.source_port
        if self.sink_port is not None:
            ctx["sink_port"] = self.sink_port
        return ctx

    def __str__(self) -> str:
        if self.kind is OutcomeKind.UPDATED:
            return f"Updated({self.sink_port}, {self.source_port})"
        if self.kind is OutcomeKind.SYNCHRONIZED:
            return f"Synchronized({self.source_port})"
        return f"{self.kind.value}({self.error.kind if self.error else ''})"


class PortSyncer:
    """Runs one fetch, compare and (maybe) write pass at a time."""

    def __init__(
        self,
        source: PortSource,
        session_client: QBittorrentSessionClient,
        sink: QBittorrentPortSink,
    ):
        self.source = source
        self.session_client = session_client
        self.sink = sink
        self.session: Optional[SinkSession] = None

    def _authenticate(self) -> SinkSession:
        self.session = self.session_client.ensure_authenticated(self.session)
        return self.session

    def _invalidate_session(self) -> None:
        if self.session is not None:
            self.session.invalidate()
            self.session = None

    def sync_once(self) -> SyncOutcome:
        outcome = self._run_pass()
        log_outcome(outcome)
        return outcome

    def _run_pass(self) -> SyncOutcome:
        try:
            source_port = self.source.fetch_forwarded_port()
        except SourceError as e:
            return SyncOutcome(OutcomeKind.SOURCE_UNAVAILABLE, "fetch_source", error=e)

        sink_port: Optional[int] = None
        for attempt in (1, 2):
            try:
                session = self._authenticate()
            except PortSyncError as e:
                self._invalidate_session()
                return SyncOutcome(
                    OutcomeKind.AUTHENTICATION_FAILED, "authenticate", source_port, error=e
                )

            try:
                sink_port = self.sink.get_listening_port(session)
                break
            except SinkUnauthorized as e:
                self._invalidate_session()
                if attempt == 2:
                    return SyncOutcome(
                        OutcomeKind.SINK_UNAVAILABLE, "fetch_sink", source_port, error=e
                    )
                logger.info("qBittorrent session expired, logging in again")
            except SinkError as e:
                return SyncOutcome(OutcomeKind.SINK_UNAVAILABLE, "fetch_sink", source_port, error=e)

        if sink_port == source_port:
            return SyncOutcome(OutcomeKind.SYNCHRONIZED, "compare", source_port, sink_port)

        try:
            self.sink.set_listening_port(session, source_port)
        except SinkError as e:
            if not session.valid:
                self.session = None
            return SyncOutcome(
                OutcomeKind.SINK_WRITE_FAILED, "write", source_port, sink_port, error=e
            )
        return SyncOutcome(OutcomeKind.UPDATED, "write", source_port, sink_port)

    def close(self) -> None:
        self._invalidate_session()
        self.source.close()


def log_outcome(outcome: SyncOutcome) -> None:
    extra = {"context": outcome.context()}
    if outcome.kind is OutcomeKind.UPDATED:
        logger.info(
            f"{outcome}: qBittorrent listening port {outcome.sink_port} -> {outcome.source_port}",
            extra=extra,
        )
    elif outcome.kind is OutcomeKind.SYNCHRONIZED:
        logger.info(f"{outcome}: qBittorrent already listens on the forwarded port", extra=extra)
    else:
        logger.error(f"{outcome}: pass failed at {outcome.stage}: {outcome.error}", extra=extra)


# =============================================================================
# Scheduler
# =============================================================================


class Scheduler:
    """Runs passes back to back with a fixed sleep until stopped."""

    def __init__(self, syncer: PortSyncer, interval_seconds: float):
        self.syncer = syncer
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def install_signal_handlers(self) -> None:
        def _handle(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down...")
            self.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, _handle)

    def run_pass(self) -> Optional[SyncOutcome]:
        try:
            return self.syncer.sync_once()
        except Exception as e:
            logger.error(f"Unexpected error during sync pass: {e}", exc_info=True)
            return None

    def run(self, max_passes: Optional[int] = None) -> int:
        """Loop until stopped; returns the number of passes executed."""
        passes = 0
        while not self.stopped:
            self.run_pass()
            passes += 1
            if max_passes is not None and passes >= max_passes:
                break
            logger.debug(f"Waiting {self.interval_seconds:g}s before the next pass")
            if self._stop.wait(self.interval_seconds):
                break
        return passes


# =============================================================================
# Main
# =============================================================================


def create_syncer(config: Config) -> PortSyncer:
    """Factory function wiring the configured clients into a syncer."""
    return PortSyncer(
        source=GluetunPortSource(
            config.source_url, config.source_api_key, timeout=config.timeout_seconds
        ),
        session_client=QBittorrentSessionClient(
            config.sink_url,
            config.sink_username,
            config.sink_password,
            timeout=config.timeout_seconds,
        ),
        sink=QBittorrentPortSink(config.sink_url, timeout=config.timeout_seconds),
    )


def main():
    """Main entry point."""
    try:
        config = load_config()
    except ConfigurationInvalid as e:
        setup_logging(os.getenv("LOG_LEVEL", "INFO"), os.getenv("LOG_FORMAT", "text"))
        for error in e.errors:
            logger.error(error)
        logger.error("Configuration validation failed")
        sys.exit(1)

    setup_logging(config.log_level, config.log_format)
    logger.info("qbitun: Gluetun -> qBittorrent port sync", extra={"context": config.describe()})
    logger.info(f"Port source: {config.source_url}")
    logger.info(f"qBittorrent: {config.sink_url} (user {config.sink_username})")
    logger.info(f"Sync mode: {config.sync_mode}")

    syncer = create_syncer(config)
    exit_code = 0
    try:
        if config.sync_mode == "once":
            outcome = syncer.sync_once()
            exit_code = 0 if outcome.ok else 1
        else:
            logger.info(f"Sync interval: {config.interval_seconds:g}s")
            scheduler = Scheduler(syncer, config.interval_seconds)
            scheduler.install_signal_handlers()
            scheduler.run()
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully...")
    finally:
        syncer.close()
        config.clear_secrets()

    logger.info("Stopped")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
