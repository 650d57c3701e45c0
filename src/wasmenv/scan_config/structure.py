from typing import Annotated, Literal
from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

'''
Schema for wasmenv configuration files. Nothing from wasmenv is imported here
so the schema can be generated in a self-contained context.
'''


class CallSite(BaseModel):
    """Guards applied to a (pointer, length) pair seen just before a call"""

    model_config = ConfigDict(title="Call site guards", extra="forbid")

    pointer_floor: Annotated[
        int,
        Field(
            0x1000,
            title="Pointer floor",
            description=" ".join((
                "Pointers at or below this address are ignored.",
                "Low addresses are never where a compiler places string data.",
            )),
            examples=[0x1000, 0x400],
        ),
    ]
    min_length: Annotated[
        int,
        Field(3, ge=1, title="Minimum candidate length", examples=[3]),
    ]
    max_length: Annotated[
        int,
        Field(100, ge=1, title="Maximum candidate length", examples=[100]),
    ]


class Extraction(BaseModel):
    """Limits for reading candidate strings out of the memory image"""

    model_config = ConfigDict(title="String extraction", extra="forbid")

    max_length: Annotated[
        int,
        Field(
            1000,
            ge=1,
            title="Maximum bytes read for one candidate",
            examples=[1000],
        ),
    ]


class NoiseRule(BaseModel):
    """A token that is never reported as an environment variable"""

    model_config = ConfigDict(title="Noise rule", extra="forbid")

    pattern: Annotated[
        str,
        Field(title="Pattern", min_length=1, examples=["HTTP", "RUST_"]),
    ]
    match: Annotated[
        Literal["exact", "substring"],
        Field(
            "exact",
            title="Match mode",
            description="exact: whole candidate equals pattern. substring: candidate contains pattern.",
        ),
    ]
    ignore_case: Annotated[
        bool,
        Field(False, title="Compare case-insensitively"),
    ]
    only_without_underscore: Annotated[
        bool,
        Field(
            False,
            title="Only without underscore",
            description="Apply this rule only to candidates that contain no underscore",
        ),
    ]


class Classifier(BaseModel):
    """Rule table deciding which strings look like environment variable names"""

    model_config = ConfigDict(title="Classifier", extra="forbid")

    min_length: Annotated[int, Field(4, ge=1, title="Minimum name length")]
    max_length: Annotated[int, Field(100, ge=1, title="Maximum name length")]
    min_letters: Annotated[
        int,
        Field(4, ge=0, title="Minimum number of letters in a name"),
    ]
    min_letter_ratio: Annotated[
        float,
        Field(
            0.5,
            ge=0.0,
            le=1.0,
            title="Minimum share of letters in a name",
            examples=[0.5],
        ),
    ]
    noise: Annotated[
        list[NoiseRule],
        Field(
            default_factory=list,
            title="Noise denylist",
            description="Candidates matching any of these rules are rejected",
        ),
    ]
    keywords: Annotated[
        list[str],
        Field(
            default_factory=list,
            title="Keyword fragments",
            description=" ".join((
                "A name with an underscore whose upper-cased form contains one of",
                "these fragments is accepted even if it is not all upper case.",
            )),
            examples=[["_KEY", "_TOKEN", "DATABASE_"]],
        ),
    ]


class Main(BaseModel):
    """Configuration for a wasmenv scan"""

    model_config = ConfigDict(title="wasmenv configuration", extra="forbid")

    version: Annotated[int, Field(1, title="Config format version")]
    call_site: Annotated[CallSite, Field(default_factory=CallSite)]
    extraction: Annotated[Extraction, Field(default_factory=Extraction)]
    classifier: Annotated[Classifier, Field(default_factory=Classifier)]
