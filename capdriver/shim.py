"""Entry point for the compiler wrappers placed on PATH during capture.

Each wrapper runs ``python -m capdriver.shim "$0" "$@"``, so ``argv[0]`` here
is the name the build invoked (cc, clang++, javac, ...).
"""

import os
import sys

from capdriver.config import load_driver_config
from capdriver.driver.context import ProcessContext
from capdriver.driver.driver import Driver
from capdriver.pipeline.structures import Command
from capdriver.utils.logging import logger


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    process = ProcessContext.from_environment(argv)
    if not process.is_compiler_shim:
        logger.error(f"capdriver.shim invoked as unknown compiler {argv[:1]}")
        return 2

    config = load_driver_config(os.environ.get("CAPDRIVER_PATHS_PROJECT_ROOT", "."))
    return Driver(config, process, command=Command.CAPTURE).run()


if __name__ == "__main__":
    sys.exit(main())
