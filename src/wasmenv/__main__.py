#!/usr/bin/env python3

import argparse
import os
from sys import exit

import art
import jsonschema

from wasmenv import VERSION, getColoredLogger

from .common import set_verbose, yaml
from .scanner import Scanner
from .wasm import DecodeError

logger = getColoredLogger("wasmenv")

RULE = "=" * 50


def report(path, names):
    '''
    Print the scan results for a module to stdout.
    '''
    print("Analyzing WASM module for environment dependencies...")
    print(f"File: {path}")
    print(RULE)

    if not names:
        print("No environment variable dependencies detected.")
        return

    print(f"Required Environment Variables ({len(names)}):")
    for i, name in enumerate(names, 1):
        print(f"  {i}. {name}")
    print()
    print("Make sure these variables are configured before deploying this module.")


def write_results(path, wasm_path, names):
    results = {
        "module": os.path.abspath(wasm_path),
        "version": VERSION,
        "environment": list(names),
    }
    with open(path, "w") as f:
        yaml.dump(results, f, sort_keys=False, default_flow_style=False)
    logger.info(f"Results written to {path}")


def add_scan_arguments(parser):
    parser.add_argument(
        "wasm", type=str, help="The WebAssembly module to scan. (e.g. path/to/app.wasm)"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Optional YAML file with tuning overrides merged over the built-in defaults.",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=1,
        help="Number of threads used to analyze function bodies. Default is 1.",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Optional path to write the detected variables as YAML.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Set log level to debug"
    )


def wasmenv_scan(args):
    """
    Scan a module and report its environment variables. Returns the process exit code.
    """
    try:
        scanner = Scanner(args.config, jobs=args.jobs)
    except OSError as e:
        logger.error(f"Could not read config {args.config}: {e}")
        return 1
    except (ValueError, jsonschema.ValidationError, yaml.YAMLError) as e:
        logger.error(f"Invalid config {args.config}: {e}")
        return 1

    try:
        names = scanner.scan_file(args.wasm)
    except OSError as e:
        logger.error(f"Could not read {args.wasm}: {e}")
        return 1
    except DecodeError as e:
        logger.error(f"{args.wasm} is not a valid WebAssembly binary: {e}")
        return 1

    report(args.wasm, names)

    if args.output:
        try:
            write_results(args.output, args.wasm, names)
        except OSError as e:
            logger.error(f"Could not write results to {args.output}: {e}")
            return 1
    return 0


def main():
    parser = argparse.ArgumentParser(
        description=f"""
    {art.text2art("WASMENV", font='tarty1-large')}
\t\t\t\tversion {VERSION}

Static discovery of the environment variables a WebAssembly module reads.

wasmenv decodes the module, rebuilds the initial contents of linear memory from its
data segments and follows constant pointers through every function body. Each string
passed to a call as a (pointer, length) pair is checked against a rule table and the
ones that look like environment variable names are reported.

    wasmenv path/to/app.wasm

The rule table and call site thresholds can be tuned with a YAML file. Generate one
holding the defaults with wasmenv-config, edit it, and pass it back with --config.

    wasmenv-config --out wasmenv.yaml
    wasmenv path/to/app.wasm --config wasmenv.yaml --output env.yaml
    """,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    add_scan_arguments(parser)
    parser.add_argument(
        "--version", action="version", help="Show version information", version=VERSION
    )

    args = parser.parse_args()

    if args.jobs < 1:
        parser.error("--jobs must be at least 1")

    if args.verbose:
        # Set level to debug
        set_verbose(True)
        logger.debug("Verbose logging enabled")

    logger.debug("wasmenv %s", VERSION)
    exit(wasmenv_scan(args))


if __name__ == "__main__":
    main()
