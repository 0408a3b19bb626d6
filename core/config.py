"""
Configuration Management - YAML-based configuration with environment overrides
=============================================================================

This module handles all configuration aspects including:
- Loading from YAML files
- Environment variable overrides
- Default values
- Configuration validation
- Reading the automation gateway's hook settings
"""

import os
import json
import yaml
from pathlib import Path
from typing import Any, Dict, Optional, List
from dataclasses import dataclass, field, asdict

from .exceptions import ConfigError


@dataclass
class RelayConfig:
    """
    Relay server configuration.

    Controls where the relay listens, which paths it answers on,
    and the shared token guests must present.
    """
    host: str = "127.0.0.1"
    port: int = 8800
    order_token: str = ""  # Loaded from environment
    service_name: str = "the-scientists-order-relay"

    # Proxies in front of the relay may strip the mounted prefix,
    # so "/" is accepted alongside the mount paths.
    order_paths: List[str] = field(default_factory=lambda: ["/", "/bar-orders", "/gmail-pubsub"])
    health_paths: List[str] = field(default_factory=lambda: ["/", "/healthz", "/bar-orders", "/gmail-pubsub"])

    max_body_bytes: int = 50_000
    gateway_config_path: str = "~/.openclaw/openclaw.json"

    def validate(self) -> None:
        """Validate relay configuration parameters."""
        if self.port < 1 or self.port > 65535:
            raise ConfigError(f"Invalid relay port: {self.port}")

        for path in list(self.order_paths) + list(self.health_paths):
            if not str(path).startswith("/"):
                raise ConfigError(f"Mount paths must start with '/', got {path!r}")

        if self.max_body_bytes < 1:
            raise ConfigError("max_body_bytes must be at least 1")

    def require_token(self) -> str:
        """
        Return the shared order token, refusing an empty one.

        Raises:
            ConfigError: If no token is configured
        """
        token = (self.order_token or "").strip()
        if not token:
            raise ConfigError(
                "Missing ORDER_PUBLIC_TOKEN. Refusing to start.",
                {"hint": "export ORDER_PUBLIC_TOKEN=<shared token>"}
            )
        return token


@dataclass
class RateLimitConfig:
    """
    Per-address rate limiting for inbound orders.

    Counters are in-memory and best-effort.
    """
    window_seconds: float = 60.0
    max_requests: int = 30
    max_tracked_addresses: int = 10_000

    def validate(self) -> None:
        """Validate rate limit configuration."""
        if self.window_seconds <= 0:
            raise ConfigError("window_seconds must be positive")

        if self.max_requests < 1:
            raise ConfigError("max_requests must be at least 1")

        if self.max_tracked_addresses < 1:
            raise ConfigError("max_tracked_addresses must be at least 1")


@dataclass
class DeliveryConfig:
    """
    What the agent hook is asked to deliver, and to whom.
    """
    channel: str = "whatsapp"
    to: str = "+15555550100"
    recipient_name: str = "Mei"
    order_title: str = "the scientists order"

    hook_name: str = "BarOrder"
    session_prefix: str = "hook:bar-order"
    wake_mode: str = "now"
    thinking: str = "low"
    timeout_seconds: int = 30

    # Transport timeout for the forward call itself
    http_timeout: float = 40.0

    def validate(self) -> None:
        """Validate delivery configuration."""
        if not self.channel:
            raise ConfigError("Delivery channel is required")

        if not self.to:
            raise ConfigError("Delivery destination ('to') is required")

        if self.timeout_seconds < 1:
            raise ConfigError("timeout_seconds must be at least 1")


@dataclass
class ClientConfig:
    """
    Guest client configuration.

    None of these values are secret: in the browser they ship with the page.
    """
    endpoint: str = ""
    token: str = ""
    bar_open_default: bool = True
    host_pin: str = "science"
    request_timeout: float = 8.0
    site_url: str = "https://the-scientists.local/"
    state_path: str = ""  # Defaults to <data_dir>/client.db
    drinks: List[str] = field(default_factory=lambda: [
        "Martini",
        "Negroni",
        "Old Fashioned",
        "Gin & Tonic",
        "Sparkling Water",
    ])

    def validate(self) -> None:
        """Validate client configuration."""
        if self.request_timeout <= 0:
            raise ConfigError(f"request_timeout must be positive, got {self.request_timeout}")

        if self.endpoint and not self.endpoint.startswith(("http://", "https://")):
            raise ConfigError(f"Order endpoint must be an http(s) URL, got {self.endpoint!r}")


@dataclass
class GatewayHooks:
    """
    Hook settings read from the automation gateway's own config file.

    Attributes:
        token (str): Bearer token for the hook endpoints
        agent_url (str): Endpoint that runs an agent turn and delivers
        wake_url (str): Endpoint that only enqueues a system event
    """
    token: str
    agent_url: str
    wake_url: str


@dataclass
class Config:
    """
    Main configuration container.

    Aggregates all configuration sections into a single object
    and provides methods for loading, saving, and validating.
    """
    app_name: str = "Bar Order Relay"
    version: str = "1.0.0"
    debug: bool = False

    relay: RelayConfig = field(default_factory=RelayConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    delivery: DeliveryConfig = field(default_factory=DeliveryConfig)
    client: ClientConfig = field(default_factory=ClientConfig)

    # Paths (set at runtime)
    config_dir: str = ""
    data_dir: str = ""
    log_dir: str = ""

    def validate(self) -> None:
        """
        Validate all configuration sections.

        Raises:
            ConfigError: If any configuration section is invalid
        """
        self.relay.validate()
        self.rate_limit.validate()
        self.delivery.validate()
        self.client.validate()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "app_name": self.app_name,
            "version": self.version,
            "debug": self.debug,
            "relay": asdict(self.relay),
            "rate_limit": asdict(self.rate_limit),
            "delivery": asdict(self.delivery),
            "client": asdict(self.client),
        }

    def client_state_path(self) -> Path:
        """Location of the per-device client store."""
        if self.client.state_path:
            return Path(self.client.state_path).expanduser()
        return Path(self.data_dir or get_default_data_dir()) / "client.db"


SECTIONS = ("relay", "rate_limit", "delivery", "client")


def get_default_config_dir() -> Path:
    """
    Get the default configuration directory path.

    Returns:
        Path to the configuration directory
    """
    if "BAR_ORDER_CONFIG_DIR" in os.environ:
        return Path(os.environ["BAR_ORDER_CONFIG_DIR"])

    if "XDG_CONFIG_HOME" in os.environ:
        return Path(os.environ["XDG_CONFIG_HOME"]) / "bar-order-relay"

    return Path.home() / ".config" / "bar-order-relay"


def get_default_data_dir() -> Path:
    """
    Get the default data directory path.

    Returns:
        Path to the data directory
    """
    if "BAR_ORDER_DATA_DIR" in os.environ:
        return Path(os.environ["BAR_ORDER_DATA_DIR"])

    if "XDG_DATA_HOME" in os.environ:
        return Path(os.environ["XDG_DATA_HOME"]) / "bar-order-relay"

    return Path.home() / ".local" / "share" / "bar-order-relay"


def load_config(config_path: Optional[str] = None, load_env: bool = True) -> Config:
    """
    Load configuration from YAML file with environment variable overrides.

    This function loads configuration in the following order:
    1. Default values from dataclass
    2. Values from YAML file
    3. Environment variable overrides

    Args:
        config_path: Path to configuration file (optional)
        load_env: Whether to load environment variable overrides

    Returns:
        Config object with loaded values

    Raises:
        ConfigError: If configuration is invalid or cannot be loaded
    """
    config = Config()

    config.config_dir = str(get_default_config_dir())
    config.data_dir = str(get_default_data_dir())
    config.log_dir = str(Path(config.data_dir) / "logs")

    # .env in the config directory never overrides the real environment
    if load_env:
        env_file = Path(config.config_dir) / ".env"
        if env_file.exists():
            _load_env_file(env_file)

    if config_path:
        yaml_path = Path(config_path)
        if not yaml_path.exists():
            raise ConfigError("Config file not found", {"path": str(yaml_path)})
    else:
        yaml_path = Path(config.config_dir) / "config.yaml"

    if yaml_path.exists():
        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}

            _apply_yaml_config(config, yaml_config)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse config file: {e}", {"path": str(yaml_path)})
        except IOError as e:
            raise ConfigError(f"Failed to read config file: {e}", {"path": str(yaml_path)})

    if load_env:
        _apply_env_overrides(config)

    config.validate()

    return config


def _load_env_file(env_file: Path) -> None:
    """Load KEY=VALUE lines into os.environ without overriding existing keys."""
    try:
        with open(env_file, "r") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and key not in os.environ:
                    os.environ[key] = value
    except IOError as e:
        raise ConfigError(f"Failed to read .env file: {e}", {"path": str(env_file)})


def _apply_yaml_config(config: Config, yaml_config: Dict[str, Any]) -> None:
    """
    Apply YAML configuration values to Config object.

    Unknown keys are ignored.

    Args:
        config: Config object to update
        yaml_config: Dictionary of configuration values from YAML
    """
    if not isinstance(yaml_config, dict):
        raise ConfigError("Config file must contain a mapping at the top level")

    for key in ("app_name", "version", "debug"):
        if key in yaml_config:
            setattr(config, key, yaml_config[key])

    for section in SECTIONS:
        section_cfg = yaml_config.get(section)
        if not section_cfg:
            continue
        if not isinstance(section_cfg, dict):
            raise ConfigError(f"Config section '{section}' must be a mapping", {"value": section_cfg})
        section_obj = getattr(config, section)
        defaults = type(section_obj)()
        for key, value in section_cfg.items():
            if not hasattr(section_obj, key):
                continue
            _check_type(section, key, value, getattr(defaults, key))
            setattr(section_obj, key, value)


def _check_type(section: str, key: str, value: Any, default: Any) -> None:
    """Reject a YAML value whose type does not match the field's default."""
    expected = type(default)
    if expected is float and isinstance(value, int) and not isinstance(value, bool):
        return
    if expected is int and isinstance(value, bool):
        raise ConfigError(f"{section}.{key} must be {expected.__name__}, got {value!r}")
    if not isinstance(value, expected):
        raise ConfigError(f"{section}.{key} must be {expected.__name__}, got {value!r}")


def _apply_env_overrides(config: Config) -> None:
    """
    Apply environment variable overrides to Config object.

    Args:
        config: Config object to update
    """
    env_mappings = {
        # Relay settings
        "ORDER_RELAY_BIND": ("relay", "host"),
        "ORDER_RELAY_PORT": ("relay", "port", int),
        "ORDER_PUBLIC_TOKEN": ("relay", "order_token"),
        "ORDER_RELAY_GATEWAY_CONFIG": ("relay", "gateway_config_path"),

        # Delivery settings
        "ORDER_DELIVERY_TO": ("delivery", "to"),
        "ORDER_DELIVERY_CHANNEL": ("delivery", "channel"),

        # Client settings
        "ORDER_ENDPOINT": ("client", "endpoint"),
        "ORDER_CLIENT_TOKEN": ("client", "token"),
        "ORDER_HOST_PIN": ("client", "host_pin"),
        "ORDER_BAR_OPEN_DEFAULT": ("client", "bar_open_default", bool),
    }

    for env_var, mapping in env_mappings.items():
        value = os.environ.get(env_var)
        if value is None:
            continue

        section, key = mapping[0], mapping[1]
        converter = mapping[2] if len(mapping) > 2 else str
        section_obj = getattr(config, section)

        if converter == bool:
            converted = value.strip().lower() in ("true", "1", "yes", "on")
        else:
            try:
                converted = converter(value.strip())
            except ValueError:
                raise ConfigError(f"Invalid value for {env_var}: {value!r}")

        setattr(section_obj, key, converted)


def load_gateway_hooks(path: str) -> GatewayHooks:
    """
    Read the automation gateway's JSON config and derive the hook endpoints.

    The relay refuses to start unless hooks are enabled and a hook token
    is present.

    Args:
        path: Path to the gateway JSON file (``~`` is expanded)

    Returns:
        GatewayHooks with the bearer token and hook URLs

    Raises:
        ConfigError: If the file is missing, unreadable, or hooks are off
    """
    gateway_path = Path(path).expanduser()

    try:
        raw = gateway_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError("Gateway config file not found", {"path": str(gateway_path)})
    except IOError as e:
        raise ConfigError(f"Failed to read gateway config: {e}", {"path": str(gateway_path)})

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Failed to parse gateway config: {e}", {"path": str(gateway_path)})

    if not isinstance(data, dict):
        raise ConfigError("Gateway config must be a JSON object", {"path": str(gateway_path)})

    hooks = data.get("hooks") or {}
    gateway = data.get("gateway") or {}

    if not hooks.get("enabled") or not hooks.get("token"):
        raise ConfigError(
            "Gateway hooks not enabled or missing hooks.token",
            {"path": str(gateway_path)}
        )

    port = gateway.get("port") or 18789
    base_path = hooks.get("path") or "/hooks"

    return GatewayHooks(
        token=str(hooks["token"]),
        agent_url=f"http://127.0.0.1:{port}{base_path}/agent",
        wake_url=f"http://127.0.0.1:{port}{base_path}/wake",
    )


def save_config(config: Config, config_path: Optional[str] = None) -> None:
    """
    Save configuration to YAML file.

    The shared order token is never written; it stays in the environment.

    Args:
        config: Config object to save
        config_path: Path to save configuration (optional)

    Raises:
        ConfigError: If configuration cannot be saved
    """
    if config_path:
        yaml_path = Path(config_path)
    else:
        yaml_path = Path(config.config_dir) / "config.yaml"

    yaml_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        config_dict = config.to_dict()
        config_dict["relay"].pop("order_token", None)

        with open(yaml_path, "w", encoding="utf-8") as f:
            yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
    except IOError as e:
        raise ConfigError(f"Failed to save config file: {e}", {"path": str(yaml_path)})
