import jsonschema
import yaml
from yamlcore import CoreLoader

import wasmenv
from wasmenv.common import patch_config
from wasmenv.defaults import get_default_config

from . import structure


logger = wasmenv.getColoredLogger("wasmenv.config")


def _jsonify_dict(d):
    """
    Recursively walk a nested dict and stringify all the keys

    This is required for jsonschema.validate() to succeed,
    since JSON requires keys to be strings.
    """
    return {
        str(k): _jsonify_dict(v) if isinstance(v, dict) else v for k, v in d.items()
    }


def _validate_config_schema(config):
    """Validate config with Pydantic, then against the generated JSON schema"""
    validated_model = structure.Main(**config)
    dumped = validated_model.model_dump()

    jsonschema.validate(
        instance=_jsonify_dict(dumped),
        schema=structure.Main.model_json_schema(),
    )
    return validated_model


def _dedupe_lists(config):
    """Lists are concatenated when merging, drop entries that came in twice"""
    classifier = config.classifier
    classifier.keywords = list(dict.fromkeys(classifier.keywords))
    noise = []
    for rule in classifier.noise:
        if rule not in noise:
            noise.append(rule)
    classifier.noise = noise
    return config


def _validate_config_options(config):
    """Do custom checks for config option compatibility"""

    err = False
    for section in ("call_site", "classifier"):
        options = getattr(config, section)
        if options.min_length > options.max_length:
            err = True
            logger.error(
                f"{section}.min_length ({options.min_length}) is larger than"
                f" {section}.max_length ({options.max_length})"
            )

    if config.call_site.max_length > config.extraction.max_length:
        logger.warning(
            "call_site.max_length is larger than extraction.max_length;"
            " longer candidates will never be read"
        )

    if err:
        raise ValueError("invalid wasmenv configuration")


def validate_config(config):
    """
    Validate a configuration dict and return it as a structure.Main model.

    :raises pydantic.ValidationError: On unknown keys or wrong types.
    :raises ValueError: On inconsistent option combinations.
    """
    model = _dedupe_lists(_validate_config_schema(config))
    _validate_config_options(model)
    return model


def load_unpatched_config(path):
    '''
    Load a configuration file without merging it over the defaults. No validation.
    '''
    with open(path, "r") as f:
        config = yaml.load(f, Loader=CoreLoader)
    return config or {}


def load_config(path=None, validate=True):
    """
    Load wasmenv config.

    The file at ``path`` (if any) is merged over the built-in defaults: nested
    options override the default value, lists such as classifier.noise and
    classifier.keywords extend the default lists.
    """
    config = get_default_config()
    if path is not None:
        overrides = load_unpatched_config(path)
        if not isinstance(overrides, dict):
            raise ValueError(f"Config file {path} must contain a mapping at top level")
        logger.debug(f"applying config overrides from {path}")
        config = patch_config(config, overrides)

    if validate:
        return validate_config(config)
    return config


def default_config():
    """The built-in configuration as a validated model."""
    return validate_config(get_default_config())


def dump_config(config, path):
    """
    Write wasmenv config to path
    """
    if isinstance(config, structure.Main):
        config = config.model_dump()
    else:
        config = validate_config(config).model_dump()

    with open(path, "w") as f:
        f.write("# wasmenv configuration. When passed with --config, scalars replace\n")
        f.write("# the built-in defaults and list entries are added to them.\n")
        yaml.dump(config, f, sort_keys=False, default_flow_style=False, width=None)
