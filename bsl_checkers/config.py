"""
bsl_checkers/config.py
══════════════════════

Loading of BSL Language Server style JSON configuration files.

Example ``.bsl-language-server.json``::

    {
      "language": "ru",
      "diagnostics": {
        "parameters": {
          "UsingObjectNotAvailableUnix": {
            "guardTokens": ["Linux_x86", "Linux_x86_64"]
          },
          "SomeNoisyCheck": false
        },
        "suppress": ["SomeOtherCode"]
      }
    }

A ``false`` parameter value disables the checker; an object value is
handed to the checker's ``configure()`` as its option dict.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from bsl_checkers.errors import ConfigurationError
from bsl_checkers.messages import DEFAULT_LANGUAGE, normalize_language

_log = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = ".bsl-language-server.json"


@dataclass
class LinterConfiguration:
    """Resolved configuration for one analysis run."""
    language: str = DEFAULT_LANGUAGE
    disabled: Set[str] = field(default_factory=set)
    options: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    suppress: List[str] = field(default_factory=list)
    source: Optional[str] = None

    def options_for(self, code: str) -> Dict[str, Any]:
        return dict(self.options.get(code, {}))

    def is_enabled(self, code: str) -> bool:
        return code not in self.disabled


def parse_configuration(data: Any, source: Optional[str] = None) -> LinterConfiguration:
    """Validate a decoded JSON document and build a configuration."""
    if not isinstance(data, dict):
        raise ConfigurationError("top-level value must be an object", source)

    config = LinterConfiguration(source=source)

    language = data.get("language", DEFAULT_LANGUAGE)
    if not isinstance(language, str):
        raise ConfigurationError("'language' must be a string", source)
    config.language = normalize_language(language)

    diagnostics = data.get("diagnostics", {})
    if not isinstance(diagnostics, dict):
        raise ConfigurationError("'diagnostics' must be an object", source)

    parameters = diagnostics.get("parameters", {})
    if not isinstance(parameters, dict):
        raise ConfigurationError("'diagnostics.parameters' must be an object", source)
    for code, value in parameters.items():
        if value is False:
            config.disabled.add(code)
        elif value is True:
            continue
        elif isinstance(value, dict):
            config.options[code] = dict(value)
        else:
            raise ConfigurationError(
                f"parameters for '{code}' must be true, false or an object", source
            )

    suppress = diagnostics.get("suppress", [])
    if not isinstance(suppress, list) or not all(isinstance(s, str) for s in suppress):
        raise ConfigurationError("'diagnostics.suppress' must be a list of codes", source)
    config.suppress = list(suppress)

    return config


def load_configuration(path: Union[str, Path]) -> LinterConfiguration:
    """Read and validate a JSON configuration file."""
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise ConfigurationError(f"cannot read configuration: {exc}", str(p)) from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            f"invalid JSON at line {exc.lineno}, column {exc.colno}: {exc.msg}", str(p)
        ) from exc

    config = parse_configuration(data, source=str(p))
    _log.info("loaded configuration from %s (language=%s, %d disabled)",
              p, config.language, len(config.disabled))
    return config


def find_configuration(start: Union[str, Path]) -> Optional[Path]:
    """Look for :data:`DEFAULT_CONFIG_NAME` in *start* and its parents."""
    current = Path(start).resolve()
    if current.is_file():
        current = current.parent
    for directory in (current, *current.parents):
        candidate = directory / DEFAULT_CONFIG_NAME
        if candidate.is_file():
            return candidate
    return None


__all__ = [
    "DEFAULT_CONFIG_NAME",
    "LinterConfiguration",
    "parse_configuration",
    "load_configuration",
    "find_configuration",
]
