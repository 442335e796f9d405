"""Runs .pkm files or the interactive shell of the PukiMO interpreter. Also uses error handling context manager. Called
from the pukimo executable script.
"""

import argparse
import logging

from pukimo.lang.error import ErrorHandler
from pukimo.lang.grammar import display
from pukimo.lang.session import Session, parse_source, read_source
from pukimo.lang.shell import Shell
from pukimo.runtime.objects import CatchRates


def catch_rate(value):
    """argparse type for a percentage between 0 and 100."""
    rate = int(value)
    if not 0 <= rate <= 100:
        raise argparse.ArgumentTypeError(f"catch rate must be between 0 and 100, got {rate}")
    return rate


def build_parser():
    parser = argparse.ArgumentParser(prog="pukimo", description="PukiMO interpreter")
    parser.add_argument("file", help="file to interpret and run (if empty, goes to command-line mode)", nargs="?")
    parser.add_argument("--seed", type=int, help="seed for encounters and catch attempts")
    parser.add_argument("--catch-rate", type=catch_rate, default=CatchRates.rate,
                        help="default percent chance that attemptCatch succeeds (default: %(default)s)")
    parser.add_argument("--ast", action="store_true", help="print the syntax tree of file instead of running it")
    parser.add_argument("--no-color", action="store_true", help="do not color error messages")
    parser.add_argument("-v", "--verbose", action="store_true", help="log interpreter internals to stderr")
    return parser


def main(argv=None):
    """Runs PukiMO interpreter. Called from pukimo executable script."""
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    with ErrorHandler(color=False if args.no_color else None) as error_handler:
        if args.file is not None and args.ast:
            print(display(parse_source(read_source(args.file))))

        elif args.file is not None:
            sess = Session(error_handler, args.file, cmd_line=False, seed=args.seed, catch_rate=args.catch_rate)
            sess.run()

        else:
            sess = Session(error_handler, Session.SH_FILE, cmd_line=True, seed=args.seed, catch_rate=args.catch_rate)
            Shell(sess).cmdloop()


if __name__ == "__main__":
    main()
