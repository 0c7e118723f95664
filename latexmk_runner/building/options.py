"""
Build Option Resolution

Merges caller-supplied options with the defaults. Scalars replace scalars;
the latexmk argument list is merged unless the caller overrides it wholesale.

Examples:
    >>> resolve_options({"passes": 2}).passes
    2

    # Conflicting flags are not appended twice
    >>> resolve_options({"args": ["-interaction=batchmode"]}).args
    ('-pdf', '-g', '-f', '-interaction=nonstopmode')

    # Replace the defaults entirely
    >>> resolve_options({"args": ["-xelatex"], "override_args": True}).args
    ('-xelatex',)
"""

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv
from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException

from latexmk_runner.building.exceptions import ValidationError

load_dotenv()
LATEXMK_COMMAND = os.getenv("LATEXMK_COMMAND", "latexmk")

DEFAULT_ARGS = ("-pdf", "-g", "-f", "-interaction=nonstopmode")


@dataclass(frozen=True)
class BuildOptions:
    """
    Fully-resolved options for one build.

    Attributes:
        args: latexmk command-line arguments (the staged file name is appended later)
        override_args: Caller's args replaced the defaults instead of being merged
        ignore_extension_check: Accept input files without a .tex-like extension
        dependencies: Extra files copied next to the input (e.g. .bib, .cls, data files)
        dependency_renames: Original dependency path -> file name inside the workspace
        passes: Number of sequential latexmk invocations (>= 1)
        command: Executable to invoke
        allow_nonzero_exit: Treat a nonzero exit code as a successful pass
        timeout_s: Per-pass timeout in seconds (None for no limit)
    """

    args: Tuple[str, ...] = DEFAULT_ARGS
    override_args: bool = False
    ignore_extension_check: bool = False
    dependencies: Tuple[str, ...] = ()
    dependency_renames: Dict[str, str] = field(default_factory=dict)
    passes: int = 1
    command: str = LATEXMK_COMMAND
    allow_nonzero_exit: bool = False
    timeout_s: Optional[float] = None

    def staged_name(self, dependency: Union[str, Path]) -> str:
        """Name a dependency takes inside the workspace (rename or basename)."""
        key = str(dependency)
        return self.dependency_renames.get(key, Path(key).name)


OPTION_NAMES = frozenset(f.name for f in dataclasses.fields(BuildOptions))
DEFAULT_OPTIONS = BuildOptions()


def merge_args(defaults: Iterable[str], extra: Iterable[str]) -> Tuple[str, ...]:
    """
    Append each extra argument unless an existing one already contains its flag name.

    The flag name is the token up to the first '='. Matching is by substring,
    so '-interaction=batchmode' is dropped when '-interaction=nonstopmode' is
    present, and '-p' is dropped because '-pdf' contains it.

    Args:
        defaults: Base argument list
        extra: Caller-supplied arguments, in order

    Returns:
        Merged argument tuple
    """
    merged = list(defaults)
    for token in extra:
        flag = token.split("=", 1)[0]
        if not any(flag in existing for existing in merged):
            merged.append(token)
    return tuple(merged)


def _as_str_tuple(value: Any, name: str) -> Tuple[str, ...]:
    if isinstance(value, (str, Path)):
        return (str(value),)
    try:
        return tuple(str(item) for item in value)
    except TypeError:
        raise ValidationError(f"Option '{name}' must be a list of strings", field=name)


def _as_bool(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"Option '{name}' must be a boolean, got {value!r}", field=name)
    return value


def _validate_passes(value: Any) -> int:
    # bool is an int subclass; True is not a pass count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Option 'passes' must be an integer, got {value!r}", field="passes")
    if value < 1:
        raise ValidationError(f"Option 'passes' must be at least 1, got {value}", field="passes")
    return value


def resolve_options(
    options: Union[None, Mapping[str, Any], BuildOptions] = None,
    defaults: BuildOptions = DEFAULT_OPTIONS,
) -> BuildOptions:
    """
    Merge caller options over the defaults.

    Args:
        options: None, a mapping of option names to values, or a BuildOptions
        defaults: Options that unspecified fields inherit from

    Returns:
        Fully-populated BuildOptions

    Raises:
        ValidationError: Unknown option name, wrong type, or passes < 1
    """
    # A BuildOptions instance is already resolved; its args are taken as-is
    already_resolved = isinstance(options, BuildOptions)
    if options is None:
        options = {}
    elif already_resolved:
        options = {f.name: getattr(options, f.name) for f in dataclasses.fields(options)}
    elif not isinstance(options, Mapping):
        raise ValidationError(f"Options must be a mapping, got {type(options).__name__}")

    unknown = sorted(set(options) - OPTION_NAMES)
    if unknown:
        raise ValidationError(
            f"Unknown option(s): {unknown}. Available options: {sorted(OPTION_NAMES)}",
            field=unknown[0],
        )

    override_args = _as_bool(options.get("override_args", defaults.override_args), "override_args")

    if "args" in options:
        caller_args = _as_str_tuple(options["args"], "args")
        if override_args or already_resolved:
            args = caller_args
        else:
            args = merge_args(defaults.args, caller_args)
    else:
        args = defaults.args

    dependencies = _as_str_tuple(options.get("dependencies", defaults.dependencies), "dependencies")

    renames = options.get("dependency_renames", defaults.dependency_renames) or {}
    if not isinstance(renames, Mapping):
        raise ValidationError(
            "Option 'dependency_renames' must be a mapping", field="dependency_renames"
        )
    renames = {str(k): str(v) for k, v in renames.items()}

    timeout_s = options.get("timeout_s", defaults.timeout_s)
    if timeout_s is not None:
        if isinstance(timeout_s, bool) or not isinstance(timeout_s, (int, float)) or timeout_s <= 0:
            raise ValidationError(
                f"Option 'timeout_s' must be a positive number, got {timeout_s!r}",
                field="timeout_s",
            )
        timeout_s = float(timeout_s)

    command = options.get("command", defaults.command)
    if not isinstance(command, str) or not command or "\0" in command:
        raise ValidationError("Option 'command' must be a non-empty string", field="command")

    return BuildOptions(
        args=args,
        override_args=override_args,
        ignore_extension_check=_as_bool(
            options.get("ignore_extension_check", defaults.ignore_extension_check),
            "ignore_extension_check",
        ),
        dependencies=dependencies,
        dependency_renames=renames,
        passes=_validate_passes(options.get("passes", defaults.passes)),
        command=command,
        allow_nonzero_exit=_as_bool(
            options.get("allow_nonzero_exit", defaults.allow_nonzero_exit), "allow_nonzero_exit"
        ),
        timeout_s=timeout_s,
    )


def load_options_file(config_path: Path) -> Dict[str, Any]:
    """
    Load build options from a YAML file.

    The file holds a single mapping whose keys are option names, e.g.

        passes: 2
        args: ["-xelatex"]
        override_args: true
        dependencies: [refs.bib]

    Args:
        config_path: Path to the YAML file

    Returns:
        Plain dict suitable for resolve_options()

    Raises:
        ValidationError: File missing, unparsable, or not a mapping
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ValidationError(f"Options file not found: {config_path}", field="config")

    try:
        loaded = OmegaConf.to_container(OmegaConf.load(config_path), resolve=True)
    except (OmegaConfBaseException, yaml.YAMLError, ValueError) as e:
        raise ValidationError(f"Could not parse options file {config_path}: {e}", field="config")

    if not isinstance(loaded, dict):
        raise ValidationError(
            f"Options file must contain a mapping, got {type(loaded).__name__}", field="config"
        )

    return loaded
