"""
Expansion of ${VAR} placeholders in configuration text.
"""
import os
import re
from typing import Dict, List, Mapping, Optional

from dotenv import dotenv_values

# ${VAR}, ${VAR:-default}, ${VAR:+value}; "$${" escapes a literal "${"
_PLACEHOLDER = re.compile(r'\$(\$)?\{([A-Za-z_][A-Za-z0-9_]*)(?::(-|\+)([^}]*))?\}')


class UndefinedVariableError(KeyError):
    """
    Raised when plain ${VAR} placeholders name variables missing from the context.
    """
    def __init__(self, names: List[str]):
        super().__init__(", ".join(names))
        self.names = names


def build_context(env_file: Optional[str] = None,
                  environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """
    Builds the variable context: the process environment, overlaid with an env file.

    :param env_file: Optional path to a .env file.
    :param environ: Base environment, defaults to os.environ.
    :return: Variables available for interpolation.
    """
    context = dict(os.environ if environ is None else environ)
    if env_file:
        for key, value in dotenv_values(env_file).items():
            if value is not None:
                context[key] = value
    return context


class EnvironmentInterpolator:
    """
    Interpolates variables in config text.
    Supports ${VAR}, ${VAR:-default} and ${VAR:+value}.
    """
    @staticmethod
    def interpolate(template: str, context: Mapping[str, str]) -> str:
        """
        :param template: Text containing placeholders.
        :param context: Variables to substitute.
        :return: The interpolated text.
        :raises UndefinedVariableError: If any ${VAR} without modifier is not in context.
        """
        missing: List[str] = []

        def replace(match):
            escaped, name, modifier, alt_value = match.groups()
            if escaped:
                return match.group(0)[1:]

            value = context.get(name)
            if modifier == '-':
                return value if value else alt_value
            if modifier == '+':
                return alt_value if value else ''
            if value is None:
                if name not in missing:
                    missing.append(name)
                return ''
            return value

        result = _PLACEHOLDER.sub(replace, template)
        if missing:
            raise UndefinedVariableError(missing)
        return result
