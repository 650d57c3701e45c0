import logging
import re

import coloredlogs
import yaml


# Multi-line strings
# strings are represented as a literal block instead of "line1\nline2"
def literal_presenter(dumper, data):
    # Multiline strings get |, single line strings get nothing fancy
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


yaml.Dumper.add_representer(str, literal_presenter)
yaml.SafeDumper.add_representer(str, literal_presenter)


def patch_config(base_config, patch):
    """
    Recursively merge ``patch`` over ``base_config``.

    Dicts are merged key by key, lists are concatenated and any other value in
    the patch replaces the base value. Neither input is modified.
    """
    if not patch:
        # Empty patch, possibly an empty file or one with all comments
        return base_config

    def _recursive_update(base, new, config_option):
        if base is None:
            return new
        if new is None:
            return base

        if isinstance(base, (list, dict)) and not isinstance(new, type(base)):
            raise ValueError(f"config option {config_option} must be a {type(base).__name__}")

        if isinstance(base, list):
            return base + new

        if isinstance(base, dict):
            result = dict()
            for key, base_value in base.items():
                if key in new:
                    result[key] = _recursive_update(
                        base_value,
                        new[key],
                        f"{config_option}.{key}" if config_option else key,
                    )
                else:
                    result[key] = base_value
            for new_key, new_value in new.items():
                if new_key not in base:
                    result[new_key] = new_value
            return result

        if base == new:
            return base

        logger.debug(f"config override: {config_option}: `{base}` → `{new}`")
        return new

    return _recursive_update(base_config, patch, None)


class PathHighlightingFormatter(coloredlogs.ColoredFormatter):
    def format(self, record):
        message = super().format(record)
        # Paths in blue
        message = re.sub(
            r"(/[^ ]*)", coloredlogs.ansi_wrap(r"\1", color="blue", bold=True), message
        )

        # Addresses and offsets (0x...) in green
        message = re.sub(
            r"\b(0x[0-9a-fA-F]+)\b",
            coloredlogs.ansi_wrap(r"\1", color="green", bold=True),
            message,
        )
        return message


def getColoredLogger(name):
    """
    Get or create a coloredlogger at INFO.
    """
    logger = logging.getLogger(name)
    level = logging.INFO

    formatter = PathHighlightingFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s", datefmt="%H:%M:%S"
    )

    # Check if the logger already has handlers to prevent duplicate logs
    if not logger.handlers:
        handler = logging.StreamHandler()
        logger.setLevel(level)
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # Prevent log messages from propagating to parent loggers (i.e., wasmenv.scanner should not also log for wasmenv)
    logger.propagate = False

    if not hasattr(logger, 'custom_set_level'):
        # Save the original setLevel method before replacing it
        original_set_level = logger.setLevel

        def custom_set_level(level):
            # Call the original method, not the monkeypatched one
            original_set_level(level)
            for handler in logger.handlers:
                handler.setLevel(level)

        logger.custom_set_level = custom_set_level
        logger.setLevel = custom_set_level

    return logger


def set_verbose(verbose: bool) -> None:
    """Switch every wasmenv logger created so far to DEBUG (or back to INFO)."""
    level = logging.DEBUG if verbose else logging.INFO
    for name in list(logging.root.manager.loggerDict):
        if name == "wasmenv" or name.startswith("wasmenv."):
            getColoredLogger(name).setLevel(level)


logger = getColoredLogger("wasmenv.config")
