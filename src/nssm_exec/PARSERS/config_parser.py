# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Parsers for nssm-exec YAML and TOML configuration files.
"""
import logging
import os
import shlex
import tomllib
import yaml
from typing import Dict, Any, List, Optional
from pydantic import ValidationError
from ..MODELS.errors import ConfigError, ConfigErrorKind
from ..MODELS.exec_config import ExecConfig
from ..UTILS.string_interpolation import EnvironmentInterpolator, UndefinedVariableError

logger = logging.getLogger(__name__)

TOP_LEVEL_ALIASES = {
    'nssm_path': 'manager_path',
    'global': 'defaults',
}

SERVICE_ALIASES = {
    'path': 'executable_path',
    'args': 'arguments',
    'startup_dir': 'working_directory',
    'deps': 'dependencies',
}

# Keys a service inherits from the defaults block when it leaves them unset
INHERITED_KEYS = ('dependencies', 'startup_mode', 'start_on_create', 'account')


class DuplicateKeyError(ValueError):
    """A YAML mapping repeats a key."""

    def __init__(self, key, in_services: bool, mark=None):
        self.key = key
        self.in_services = in_services
        self.mark = mark
        super().__init__(f"duplicate key '{key}'{mark or ''}")


class UniqueKeyLoader(yaml.SafeLoader):
    """
    SafeLoader that rejects repeated mapping keys instead of keeping the last value.
    Repeats in the top-level 'services' mapping are reported as duplicate service names.
    """

    services_node = None

    def construct_document(self, node):
        if isinstance(node, yaml.MappingNode):
            for key_node, value_node in node.value:
                if key_node.value == 'services':
                    self.services_node = value_node
        return super().construct_document(node)

    def construct_mapping(self, node, deep=False):
        if isinstance(node, yaml.MappingNode):
            seen = set()
            for key_node, _ in node.value:
                if key_node.tag == 'tag:yaml.org,2002:merge':
                    continue
                key = self.construct_object(key_node, deep=True)
                try:
                    repeated = key in seen
                except TypeError:
                    # unhashable keys are rejected by SafeLoader itself
                    continue
                if repeated:
                    raise DuplicateKeyError(key, in_services=node is self.services_node,
                                            mark=key_node.start_mark)
                seen.add(key)
        return super().construct_mapping(node, deep=deep)

class ConfigParser:
    """
    Parser for nssm_exec.yml / nssm_exec.toml files.
    """
    def __init__(self, context: Optional[Dict[str, str]] = None):
        """
        Initializes the parser with an optional variable context for interpolation.

        :param context: Variables available to ${VAR} placeholders.
        """
        self.context = dict(os.environ) if context is None else context

    def parse(self, config_path: str) -> ExecConfig:
        """
        Parses a configuration file from a path. Files ending in .toml are read as
        TOML, anything else as YAML.

        :param config_path: Path to the configuration file.
        :return: Validated configuration.
        :raises ConfigError: If the file cannot be read or does not validate.
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(ConfigErrorKind.UNREADABLE,
                              f"Unable to read configuration file '{config_path}': {e}") from e

        fmt = 'toml' if config_path.lower().endswith('.toml') else 'yaml'
        logger.debug("Loading %s configuration from %s", fmt.upper(), config_path)
        return self.parse_from_string(content, fmt=fmt)

    def parse_from_string(self, content: str, fmt: str = 'yaml') -> ExecConfig:
        """
        Parses a configuration from a string.

        :param content: YAML or TOML text.
        :param fmt: Either 'yaml' or 'toml'.
        :return: Validated configuration.
        :raises ConfigError: If the content does not conform.
        """
        try:
            content = EnvironmentInterpolator.interpolate(content, self.context)
        except UndefinedVariableError as e:
            raise ConfigError(ConfigErrorKind.UNDEFINED_VARIABLE,
                              f"Undefined variable(s): {', '.join(e.names)}") from e

        data = self._load(content, fmt)
        data = self._normalize(data)

        try:
            return ExecConfig.model_validate(data)
        except ValidationError as e:
            raise self._to_config_error(e, data) from e

    def _load(self, content: str, fmt: str) -> Dict[str, Any]:
        """
        Deserializes raw text into a mapping.
        """
        try:
            if fmt == 'toml':
                data = tomllib.loads(content)
            elif fmt == 'yaml':
                data = yaml.load(content, Loader=UniqueKeyLoader)
            else:
                raise ValueError(f"Unsupported configuration format: {fmt}")
        except DuplicateKeyError as e:
            if e.in_services:
                raise ConfigError(ConfigErrorKind.DUPLICATE_NAME,
                                  f"Duplicate service name '{e.key}'", location='services') from e
            raise ConfigError(ConfigErrorKind.MALFORMED_SYNTAX, str(e)) from e
        except (yaml.YAMLError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(ConfigErrorKind.MALFORMED_SYNTAX, str(e)) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(ConfigErrorKind.MALFORMED_SYNTAX,
                              f"Top level must be a mapping, got {type(data).__name__}")
        return data

    def _normalize(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Applies key aliases, accepts services as a list or a name-keyed mapping,
        and merges the defaults block into every service.
        """
        data = self._rename(data, TOP_LEVEL_ALIASES)

        defaults = data.get('defaults') or {}
        if not isinstance(defaults, dict):
            raise ConfigError(ConfigErrorKind.INVALID_VALUE, "must be a mapping", location='defaults')
        defaults = self._rename(defaults, SERVICE_ALIASES)
        if isinstance(defaults.get('dependencies'), str):
            defaults['dependencies'] = defaults['dependencies'].split()
        data['defaults'] = defaults

        raw_services = data.get('services', [])
        if raw_services is None:
            raw_services = []
        if isinstance(raw_services, dict):
            # compose style: services keyed by name
            entries = []
            for name, entry in raw_services.items():
                if not isinstance(entry, dict):
                    raise ConfigError(ConfigErrorKind.INVALID_VALUE, "must be a mapping",
                                      location=f"services.{name}")
                entries.append({'name': name, **entry})
            raw_services = entries
        if not isinstance(raw_services, list):
            raise ConfigError(ConfigErrorKind.INVALID_VALUE, "must be a list of services",
                              location='services')

        services = []
        for index, entry in enumerate(raw_services):
            if not isinstance(entry, dict):
                raise ConfigError(ConfigErrorKind.INVALID_VALUE, "must be a mapping",
                                  location=f"services.{index}")
            services.append(self._parse_service(entry, defaults))
        data['services'] = services
        return data

    def _parse_service(self, entry: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
        """
        Normalizes a single service entry.

        :param entry: The raw service mapping.
        :param defaults: The already normalized defaults block.
        :return: A mapping ready for ServiceDescriptor validation.
        """
        entry = dict(entry)
        other = entry.pop('other', None)
        if isinstance(other, dict):
            for key, value in other.items():
                entry.setdefault(key, value)
        elif other is not None:
            entry['other'] = other  # rejected by validation as an unknown key

        entry = self._rename(entry, SERVICE_ALIASES)

        if isinstance(entry.get('arguments'), str):
            entry['arguments'] = self._split_args(entry['arguments'])
        if isinstance(entry.get('dependencies'), str):
            entry['dependencies'] = entry['dependencies'].split()

        for key in INHERITED_KEYS:
            if entry.get(key) is None and defaults.get(key) is not None:
                entry[key] = defaults[key]
        return entry

    @staticmethod
    def _rename(mapping: Dict[str, Any], aliases: Dict[str, str]) -> Dict[str, Any]:
        renamed = {}
        for key, value in mapping.items():
            target = aliases.get(key, key)
            if target in renamed:
                raise ConfigError(ConfigErrorKind.INVALID_VALUE,
                                  f"'{key}' given together with '{target}'")
            renamed[target] = value
        return renamed

    @staticmethod
    def _split_args(value: str) -> List[str]:
        """
        Splits a command line the way cmd does: whitespace separated, double quotes
        group words, backslashes are literal.
        """
        try:
            parts = shlex.split(value, posix=False)
        except ValueError as e:
            raise ConfigError(ConfigErrorKind.INVALID_VALUE, f"Unable to split arguments {value!r}: {e}") from e
        return [p[1:-1] if len(p) >= 2 and p[0] == p[-1] == '"' else p for p in parts]

    @staticmethod
    def _to_config_error(error: ValidationError, data: Dict[str, Any]) -> ConfigError:
        """
        Converts the first pydantic error into a ConfigError of the matching kind.
        """
        first = error.errors()[0]
        loc = list(first.get('loc', ()))

        # name the service instead of its index when possible
        if len(loc) >= 2 and loc[0] == 'services' and isinstance(loc[1], int):
            services = data.get('services', [])
            if loc[1] < len(services) and isinstance(services[loc[1]].get('name'), str):
                loc[1] = services[loc[1]]['name']
        location = '.'.join(str(part) for part in loc) or None

        err_type = first.get('type')
        if err_type == 'missing':
            kind = ConfigErrorKind.MISSING_FIELD
        elif err_type == 'duplicate_service_name':
            kind = ConfigErrorKind.DUPLICATE_NAME
        else:
            kind = ConfigErrorKind.INVALID_VALUE
        return ConfigError(kind, first.get('msg', str(error)), location=location)
