'''Command line interface'''
from __future__ import annotations
import sys, os, logging

import click
from rich.logging import RichHandler

from .conf import DcmListConfig
from .render import render_listing
from .util import DcmListError
from .walker import read_listing


log = logging.getLogger('dcmlist.cli')


def cli_error(msg, exit_code=1):
    '''Print msg to stderr and exit with non-zero exit code'''
    click.secho(msg, err=True, fg='red')
    sys.exit(exit_code)


def setup_logging(verbose, debug, quiet):
    root_logger = logging.getLogger('')
    root_logger.setLevel(logging.DEBUG)
    stream_formatter = logging.Formatter('%(name)s %(message)s')
    stream_handler = RichHandler(enable_link_path=False)
    stream_handler.setFormatter(stream_formatter)
    if debug:
        stream_handler.setLevel(logging.DEBUG)
    elif verbose:
        stream_handler.setLevel(logging.INFO)
    elif quiet:
        stream_handler.setLevel(logging.ERROR)
    else:
        stream_handler.setLevel(logging.WARN)
    root_logger.addHandler(stream_handler)
    return stream_handler


@click.command()
@click.argument('dcm_file', type=click.Path(dir_okay=False))
@click.option('--config',
              type=click.Path(dir_okay=False,
                              readable=True,
                              resolve_path=True),
              envvar='DCMLIST_CONFIG_PATH',
              default=os.path.join(click.get_app_dir('dcmlist'), 'dcmlist_conf.toml'),
              help="Path to TOML config file",
             )
@click.option('--verbose', '-v',
              is_flag=True,
              default=False,
              help="Print INFO log messages")
@click.option('--debug',
              is_flag=True,
              default=False,
              help="Print DEBUG log messages")
@click.option('--quiet',
              is_flag=True,
              default=False,
              help="Hide WARNING and below log messages")
def cli(dcm_file, config, verbose, debug, quiet):
    '''List the meta header and data set elements in a DICOM file
    '''
    if quiet:
        if verbose or debug:
            cli_error("Can't mix --quiet with --verbose/--debug")
    handler = setup_logging(verbose, debug, quiet)
    try:
        try:
            dcm_config = DcmListConfig(config, create_if_missing=True)
        except (OSError, DcmListError) as e:
            cli_error(f"Unable to load config: {e}")
        log.debug("Listing %s", dcm_file)
        entries = read_listing(dcm_file, dcm_config.decode_opts)
        try:
            for line in render_listing(entries, dcm_config.render_opts):
                click.echo(line)
        except OSError as e:
            cli_error(f"Unable to read {dcm_file}: {e}")
        except DcmListError as e:
            cli_error(f"Error decoding {dcm_file}: {e}")
    finally:
        logging.getLogger('').removeHandler(handler)


# Entry point
if __name__ == '__main__':
    cli()
