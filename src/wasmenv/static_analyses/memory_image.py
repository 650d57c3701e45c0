from wasmenv import getColoredLogger
from wasmenv.memory import build_global_table, build_memory_image
from wasmenv.wasm import WasmModule
from .base import StaticAnalysis

logger = getColoredLogger("wasmenv.static_analyses")


class MemoryImageBuilder(StaticAnalysis):
    """
    Reconstruct the initial contents of linear memory and the constant globals.

    Only looks at the data and global sections; code is left to later analyses.
    """

    def run(self, module: WasmModule, prior_results: dict) -> dict:
        """
        :param module: Decoded core module.
        :param prior_results: Results from previous analyses (unused).
        :return: Dict with the MemoryImage under "memory" and the GlobalTable
            under "globals".
        """
        memory = build_memory_image(module)
        globals_ = build_global_table(module)
        logger.debug(
            f"memory image: {len(memory.segments)} segments, "
            f"{len(globals_)} constant globals"
        )
        return {"memory": memory, "globals": globals_}
