import logging
from concurrent.futures import ThreadPoolExecutor, as_completed

from wasmenv import getColoredLogger
from wasmenv.classifier import ClassificationPolicy, RuleTableClassifier
from wasmenv.extractor import read_string
from wasmenv.interpreter import SymbolicInterpreter
from wasmenv.memory import MemoryImage
from wasmenv.scan_config import default_config
from wasmenv.wasm import DecodeError, FunctionBody, WasmModule
from .base import StaticAnalysis

logger = getColoredLogger("wasmenv.static_analyses")


class EnvFinder(StaticAnalysis):
    """
    Identify environment variable names passed as (pointer, length) string
    constants to calls anywhere in the module's code.

    Requires the results of MemoryImageBuilder.
    """

    def __init__(self, config=None, policy: ClassificationPolicy | None = None, jobs: int = 1) -> None:
        super().__init__(config if config is not None else default_config())
        self.policy = policy if policy is not None else RuleTableClassifier(self.config.classifier)
        self.jobs = max(1, jobs)

    def run(self, module: WasmModule, prior_results: dict) -> set[str]:
        """
        Find environment variable names referenced by the module's functions.

        :param module: Decoded core module.
        :param prior_results: Must contain "MemoryImageBuilder".
        :return: Set of accepted names.
        """
        image = prior_results["MemoryImageBuilder"]["memory"]
        globals_ = prior_results["MemoryImageBuilder"]["globals"]
        interpreter = SymbolicInterpreter(globals_, self.config.call_site)

        found = set()
        if self.jobs == 1 or len(module.functions) < 2:
            for body in module.functions:
                found.update(self._analyze_function(interpreter, image, body))
        else:
            # Function analyses share nothing but the read-only image and globals
            with ThreadPoolExecutor(max_workers=self.jobs) as executor:
                futures = [
                    executor.submit(self._analyze_function, interpreter, image, body)
                    for body in module.functions
                ]
                for future in as_completed(futures):
                    found.update(future.result())

        logger.debug(f"{len(found)} candidate(s) in {len(module.functions)} functions")
        return found

    def _analyze_function(
        self,
        interpreter: SymbolicInterpreter,
        image: MemoryImage,
        body: FunctionBody,
    ) -> set[str]:
        try:
            ranges = interpreter.interpret(body)
        except DecodeError as e:
            logger.warning(f"skipping {body.describe()}: {e}")
            return set()

        names = set()
        for pointer, length in ranges:
            candidate = read_string(image, pointer, length, self.config.extraction.max_length)
            if candidate is None:
                continue
            if self.policy.accepts(candidate):
                logger.debug(f"{body.describe()}: {candidate} at {pointer:#x}")
                names.add(candidate)
            elif isinstance(self.policy, RuleTableClassifier) and logger.isEnabledFor(logging.DEBUG):
                rule, _ = self.policy.explain(candidate)
                logger.debug(f"{body.describe()}: rejected {candidate!r} ({rule})")
        return names
