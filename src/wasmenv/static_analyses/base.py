from abc import ABC

from wasmenv.wasm import WasmModule


class StaticAnalysis(ABC):
    """
    Abstract base class for static analyses over one decoded core module.

    Analyses run in a fixed order; each receives the results of the ones
    before it, keyed by class name.
    """
    def __init__(self, config=None) -> None:
        self.config = config

    def run(self, module: WasmModule, prior_results: dict):
        pass
