import os

import click

from wasmenv import getColoredLogger

from .common import set_verbose
from .scan_config import dump_config, load_config

logger = getColoredLogger("wasmenv.gen_config")


def generate_config(out, overrides=None):
    '''
    Write the effective configuration (built-in defaults with the optional
    overrides file merged over them) to ``out`` so it can be edited.
    '''
    config = load_config(overrides)

    out_dir = os.path.dirname(out)
    if out_dir and not os.path.isdir(out_dir):
        os.makedirs(out_dir)

    dump_config(config, out)
    logger.info(f"Generated config at {out}")
    return out


@click.command()
@click.option("--out", required=True, help="Path to a config to be created")
@click.option("--config", "overrides", default=None, help="Optional YAML file merged over the defaults")
@click.option("-v", "--verbose", count=True)
def main(out, overrides, verbose):
    if verbose:
        set_verbose(True)

    try:
        return generate_config(out, overrides)
    except Exception as e:
        logger.error(f"Error! Could not generate config {out}")
        logger.exception(e)  # Full traceback
        raise SystemExit(1)


if __name__ == "__main__":
    main()
