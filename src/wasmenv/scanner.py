import os
from pathlib import Path

from wasmenv import getColoredLogger

from . import static_analyses as STATIC
from .classifier import ClassificationPolicy
from .common import patch_config
from .defaults import get_default_config
from .scan_config import default_config, load_config, validate_config
from .scan_config.structure import Main as ScanConfig
from .wasm import WasmModule, decode_modules

logger = getColoredLogger("wasmenv.scanner")


def resolve_config(config) -> ScanConfig:
    """
    Accept a config as None (defaults), a path to a YAML override file, a
    dict of overrides, or an already validated model. Files and dicts are
    merged over the defaults the same way.
    """
    if config is None:
        return default_config()
    if isinstance(config, ScanConfig):
        return config
    if isinstance(config, (str, os.PathLike)):
        return load_config(config)
    if isinstance(config, dict):
        return validate_config(patch_config(get_default_config(), config))
    raise TypeError(f"unsupported config type {type(config).__name__}")


class Scanner:
    '''
    Given a WebAssembly binary, find the environment variables it is likely
    to read. Each core module is analysed independently and the names found
    in all of them are merged.
    '''

    def __init__(self, config=None, policy: ClassificationPolicy | None = None, jobs: int = 1) -> None:
        self.config = resolve_config(config)
        self.policy = policy
        self.jobs = jobs

    def _create(self, analysis):
        if analysis is STATIC.EnvFinder:
            return analysis(self.config, policy=self.policy, jobs=self.jobs)
        return analysis(self.config)

    def run_static_analyses(self, module: WasmModule) -> dict:
        '''
        Run the ordered list of static analyses over one module, passing
        each the results of those before it.
        '''
        static_analyses = [
            STATIC.MemoryImageBuilder,
            STATIC.EnvFinder,
        ]

        results = {}
        for analysis in static_analyses:
            results[analysis.__name__] = self._create(analysis).run(module, results)
        return results

    def scan_module(self, module: WasmModule) -> set[str]:
        return self.run_static_analyses(module)["EnvFinder"]

    def scan_bytes(self, data: bytes) -> list[str]:
        """
        :raises DecodeError: If the binary's framing is invalid.
        :return: Sorted, deduplicated environment variable names.
        """
        modules = decode_modules(data)
        found = set()
        for module in modules:
            found |= self.scan_module(module)
        logger.debug(f"{len(found)} environment variable(s) in {len(modules)} module(s)")
        return sorted(found)

    def scan_file(self, path) -> list[str]:
        """
        :raises OSError: If ``path`` can't be read.
        :raises DecodeError: If the file is not a valid WebAssembly binary.
        """
        data = Path(path).read_bytes()
        logger.debug(f"read {len(data)} bytes from {path}")
        return self.scan_bytes(data)


def scan_bytes(data: bytes, config=None, policy: ClassificationPolicy | None = None, jobs: int = 1) -> list[str]:
    """Scan raw WebAssembly bytes for environment variable dependencies."""
    return Scanner(config, policy=policy, jobs=jobs).scan_bytes(data)


def scan_file(path, config=None, policy: ClassificationPolicy | None = None, jobs: int = 1) -> list[str]:
    """Scan a WebAssembly file for environment variable dependencies."""
    return Scanner(config, policy=policy, jobs=jobs).scan_file(path)
