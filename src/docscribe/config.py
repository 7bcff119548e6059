"""docscribe configuration system.

Configuration is YAML-based with environment variable overrides.
Supports environment variable substitution (${VAR}) in config files.

Configuration file discovery (in priority order):
1. CLI --config argument
2. $DOCSCRIBE_HOME/config.yaml
3. ~/.docscribe/config.yaml

Precedence is kept separate from file I/O: resolve_config() is a pure
function of the parsed file contents and an environment mapping.
"""

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from docscribe.exceptions import ConfigurationError
from docscribe.models.generation import INTENSITY_LEVELS, MAX_PARALLELISM, MIN_PARALLELISM
from docscribe.models.llm_config import LLMConfig
from docscribe.utils.paths import DEFAULT_HOME, atomic_write_bytes

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "DOCSCRIBE_PROVIDER": ("llm", "primary_provider"),
    "DOCSCRIBE_MODEL": ("llm", "primary_model"),
    "DOCSCRIBE_FALLBACK_PROVIDER": ("llm", "fallback_provider"),
    "DOCSCRIBE_FALLBACK_MODEL": ("llm", "fallback_model"),
    "DOCSCRIBE_PARALLELISM": ("generation", "parallelism"),
    "DOCSCRIBE_HOME": ("storage", "home"),
}

# llm keys holding credentials
SECRET_KEYS = ("api_key", "fallback_api_key")

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class RetryConfig:
    """Retry settings for provider calls.

    Attributes:
        max_attempts: Attempts per symbol, including the first
        initial_delay: Seconds to wait before the second attempt
        backoff_multiplier: Factor applied to the delay for each later attempt
    """

    max_attempts: int = 5
    initial_delay: float = 1.0
    backoff_multiplier: float = 2.0


@dataclass
class GenerationConfig:
    """Default generation settings (overridable per run from the CLI).

    Attributes:
        parallelism: Concurrent provider calls
        intensity: Documentation statuses targeted by default
        retry: Retry settings
    """

    parallelism: int = 3
    intensity: str = "undocumented"
    retry: RetryConfig = field(default_factory=RetryConfig)

    def __post_init__(self) -> None:
        """Validate generation settings."""
        if not MIN_PARALLELISM <= self.parallelism <= MAX_PARALLELISM:
            raise ValueError(
                f"parallelism must be between {MIN_PARALLELISM} and {MAX_PARALLELISM}. "
                f"Got: {self.parallelism}"
            )
        if self.intensity not in INTENSITY_LEVELS:
            raise ValueError(
                f"Invalid intensity '{self.intensity}'. Must be one of: {sorted(INTENSITY_LEVELS)}"
            )


@dataclass
class DocscribeConfig:
    """Top-level docscribe configuration.

    Attributes:
        primary: Primary provider
        fallback: Fallback provider, if configured
        generation: Generation defaults
        home: Data directory holding the cache and backups
    """

    primary: LLMConfig = field(default_factory=lambda: LLMConfig(provider="claude"))
    fallback: LLMConfig | None = None
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    home: Path = DEFAULT_HOME

    # Set by load_config
    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path

    @property
    def home_path(self) -> Path:
        """Expanded absolute data directory."""
        return self.home.expanduser().resolve()


# =============================================================================
# Environment Variable Substitution
# =============================================================================

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def substitute_env_vars(value: Any, env: Mapping[str, str]) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax, e.g. ${ANTHROPIC_API_KEY}.

    Args:
        value: Config value (string, dict, list, or other)
        env: Environment mapping to read variables from

    Returns:
        Value with environment variables substituted

    Raises:
        ConfigurationError: If a referenced variable is not set
    """
    if isinstance(value, str):

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = env.get(var_name)
            if env_value is None:
                raise ConfigurationError(f"Environment variable not set: {var_name}")
            return env_value

        return _ENV_PATTERN.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v, env) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v, env) for v in value]

    return value


# =============================================================================
# Resolution
# =============================================================================


def _section(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Config section '{name}' must be a mapping")
    return dict(section)


def _validate_provider_name(value: Any, key: str) -> str:
    provider = str(value).strip()
    if provider != provider.lower():
        raise ConfigurationError(f"{key} must be lowercase. Got: '{provider}'")
    return provider


def resolve_config(
    file_config: Mapping[str, Any] | None,
    env: Mapping[str, str],
) -> DocscribeConfig:
    """Resolve the effective configuration.

    Environment overrides take precedence field by field over file values;
    missing values fall back to defaults. The function performs no I/O.

    Args:
        file_config: Parsed YAML contents (may be None or empty)
        env: Environment mapping (usually os.environ)

    Returns:
        DocscribeConfig instance

    Raises:
        ConfigurationError: If a value is invalid
    """
    data = substitute_env_vars(dict(file_config or {}), env)
    sections = {name: _section(data, name) for name in ("llm", "generation", "storage")}

    for var_name, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var_name)
        if value:
            sections[section][key] = value

    llm = sections["llm"]
    generation = sections["generation"]
    storage = sections["storage"]

    try:
        primary_provider = _validate_provider_name(
            llm.get("primary_provider", "claude"), "primary_provider"
        )
        primary = LLMConfig(
            provider=primary_provider,
            model=llm.get("primary_model") or "",
            api_key=llm.get("api_key") or None,
            api_base=llm.get("api_base") or None,
            max_tokens=int(llm.get("max_tokens", 1024)),
        )

        fallback: LLMConfig | None = None
        if llm.get("fallback_provider"):
            fallback_provider = _validate_provider_name(
                llm["fallback_provider"], "fallback_provider"
            )
            fallback = LLMConfig(
                provider=fallback_provider,
                model=llm.get("fallback_model") or "",
                api_key=llm.get("fallback_api_key") or None,
                api_base=llm.get("fallback_api_base") or None,
                max_tokens=int(llm.get("max_tokens", 1024)),
            )
            if fallback.provider == primary.provider and fallback.model == primary.model:
                logger.warning("Fallback provider is identical to the primary provider")

        retry = RetryConfig(
            max_attempts=int(generation.get("max_attempts", 5)),
            initial_delay=float(generation.get("initial_delay", 1.0)),
            backoff_multiplier=float(generation.get("backoff_multiplier", 2.0)),
        )
        generation_config = GenerationConfig(
            parallelism=int(generation.get("parallelism", 3)),
            intensity=str(generation.get("intensity", "undocumented")),
            retry=retry,
        )
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    return DocscribeConfig(
        primary=primary,
        fallback=fallback,
        generation=generation_config,
        home=Path(str(storage.get("home") or DEFAULT_HOME)),
    )


# =============================================================================
# Config File Discovery and I/O
# =============================================================================


def find_config_file(env: Mapping[str, str] | None = None) -> Path | None:
    """Find the configuration file in standard locations.

    Args:
        env: Environment mapping (defaults to os.environ)

    Returns:
        Path to config file if found, None otherwise
    """
    env = os.environ if env is None else env
    candidates = []
    if env.get("DOCSCRIBE_HOME"):
        candidates.append(Path(env["DOCSCRIBE_HOME"]).expanduser() / CONFIG_FILENAME)
    candidates.append(DEFAULT_HOME.expanduser() / CONFIG_FILENAME)

    for candidate in candidates:
        if candidate.is_file():
            return candidate

    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML config file.

    Args:
        path: File to read

    Returns:
        Parsed mapping (empty for an empty file)

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
) -> DocscribeConfig:
    """Load configuration from file and environment.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for a config file if not specified

    Returns:
        DocscribeConfig instance

    Raises:
        FileNotFoundError: If config_path is specified but doesn't exist
        ConfigurationError: If the configuration is invalid
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path: Path | None = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    data = read_config_file(found_path) if found_path is not None else {}
    config = resolve_config(data, os.environ)
    config._config_path = found_path
    if found_path is not None:
        logger.debug("Loaded config from %s", found_path)
    return config


def _write_config_data(path: Path, data: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    content = yaml.safe_dump(dict(data), sort_keys=False)
    atomic_write_bytes(path, content.encode("utf-8"))
    if any(_section(data, "llm").get(key) for key in SECRET_KEYS):
        path.chmod(0o600)


def update_config_file(
    path: Path,
    updates: Mapping[str, Mapping[str, Any]],
    env: Mapping[str, str] | None = None,
) -> DocscribeConfig:
    """Change individual settings of a config file.

    The file is edited as written: ${VAR} references and settings that are
    not updated are kept, and environment overrides are not baked in. A value
    of None removes the key. A file that holds an API key is made readable by
    its owner only.

    Args:
        path: Config file (created when missing)
        updates: Section name -> {key: value}
        env: Environment used to validate the result (defaults to os.environ)

    Returns:
        The resolved configuration after the update

    Raises:
        ConfigurationError: If the updated file would be invalid
    """
    data = read_config_file(path) if path.is_file() else {}
    for section_name, values in updates.items():
        section = _section(data, section_name)
        for key, value in values.items():
            if value is None:
                section.pop(key, None)
            else:
                section[key] = value
        data[section_name] = section

    config = resolve_config(data, os.environ if env is None else env)
    _write_config_data(path, data)
    config._config_path = path
    logger.info("Configuration updated: %s", path)
    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return """# docscribe configuration

# LLM providers. API keys are read from the environment:
#   DOCSCRIBE_API_KEY_<PROVIDER>, or ANTHROPIC_API_KEY / OPENAI_API_KEY / GEMINI_API_KEY
llm:
  primary_provider: "claude"    # claude, openai, gemini, ollama, bedrock
  primary_model: "claude-sonnet-4-20250514"
  # fallback_provider: "openai"  # used after 5 consecutive primary failures
  # fallback_model: "gpt-4o-mini"
  # api_base: "http://localhost:11434"  # Ollama server URL
  max_tokens: 1024

generation:
  parallelism: 3                # 1-10 concurrent provider calls
  intensity: "undocumented"     # undocumented, partially_documented, stale, all
  max_attempts: 5
  initial_delay: 1.0            # seconds before the first retry
  backoff_multiplier: 2.0

storage:
  home: "~/.docscribe"          # dry-run cache and backups live here
"""
