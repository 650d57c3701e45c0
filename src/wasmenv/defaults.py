# This file contains default values for wasmenv configuration:
# call-site guards for the interpreter, the extraction cap, and the
# classifier rule table. Users override any of this with a YAML file
# (see scan_config.load_config), so keep it plain data.
from copy import deepcopy

default_version = 1

# A (pointer, length) pair at a call site is only looked at when the pointer
# is above the null page and the length could plausibly be an identifier.
default_call_site = {
    "pointer_floor": 0x1000,
    "min_length": 3,
    "max_length": 100,
}

# Never read more than this many bytes for one candidate
default_extraction = {
    "max_length": 1000,
}

# Tokens that show up as string constants in compiled modules but are not
# environment variables: protocol names, literals, toolchain/runtime markers.
default_noise = (
    [
        {"pattern": token, "match": "exact"}
        for token in [
            "HTTP",
            "HTTPS",
            "JSON",
            "UTF8",
            "WASM",
            "COMPONENT",
            "LOCALHOST",
            "MAIN",
            "FALSE",
            "TRUE",
            "FILE",
        ]
    ]
    + [
        # Rust paths and standard library variables
        {"pattern": "::", "match": "substring"},
        {"pattern": "RUST_", "match": "substring"},
        {"pattern": "BACKTRACE", "match": "substring"},
        # Type names like ParseIntError; FOO_ERROR style names are still fine
        {"pattern": "Error", "match": "substring", "only_without_underscore": True},
    ]
)

# Fragments that make a mixed-case name with an underscore look like config
default_keywords = [
    "_KEY",
    "_TOKEN",
    "_SECRET",
    "_PASSWORD",
    "_URL",
    "_DB",
    "API_KEY",
    "DATABASE_",
    "HOST_",
    "_PORT",
    "_API_",
    "JWT",
]

default_classifier = {
    "min_length": 4,
    "max_length": 100,
    "min_letters": 4,
    "min_letter_ratio": 0.5,
    "noise": default_noise,
    "keywords": default_keywords,
}

default_config = {
    "version": default_version,
    "call_site": default_call_site,
    "extraction": default_extraction,
    "classifier": default_classifier,
}


def get_default_config():
    """Return a copy of the default configuration that callers may modify."""
    return deepcopy(default_config)
