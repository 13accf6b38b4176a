"""logto — run a program and redirect its output to kmsg, netconsole or syslog."""

import logging
import sys
from argparse import REMAINDER, ArgumentParser

from logto.config import FRAMING_MODES, load_config, load_yaml_config
from logto.errors import ConfigError, LogtoError
from logto.relay import run

logger = logging.getLogger(__name__)

# options that consume the following argument
_VALUE_OPTIONS = ("-p", "-t", "--target", "-c", "--config", "--framing", "--buffer-size")


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="logto",
        usage="%(prog)s [options] -- <program> [<args>...]",
        description="Run a program and send its output to the kernel log, "
                    "netconsole or syslog.",
    )
    dest = parser.add_argument_group("destination (exactly one)")
    dest.add_argument("-k", dest="kmsg", action="store_true",
                      help="send output to /dev/kmsg")
    dest.add_argument("-n", dest="netconsole", action="store_true",
                      help="send output to netconsole (udp)")
    dest.add_argument("-s", dest="syslog", action="store_true",
                      help="send output to syslog (local)")
    parser.add_argument("-p", dest="name", metavar="NAME",
                        help="include name in the redirected output")
    parser.add_argument("-P", dest="auto_name", action="store_true",
                        help="as if -p was used with the last element of <program>")
    parser.add_argument("-t", "--target", metavar="HOST[:PORT]",
                        help="netconsole listener (default port 6666)")
    parser.add_argument("-c", "--config", metavar="FILE",
                        help="YAML file with additional settings")
    parser.add_argument("--framing", choices=FRAMING_MODES,
                        help="flush on every newline (line) or only when the buffer fills (capacity)")
    parser.add_argument("--buffer-size", type=int, metavar="BYTES",
                        help="capture buffer capacity (default 4096)")
    parser.add_argument("--announce", action="store_true",
                        help="emit a record when the program starts and exits")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="debug diagnostics on stderr")
    parser.add_argument("command", nargs=REMAINDER,
                        help="program to run and its arguments")
    return parser


def _separator_index(argv: list[str]) -> int | None:
    """Index of the ``--`` ending our options, or None when the program
    name comes first (any later ``--`` then belongs to the program)."""
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == "--":
            return i
        if not arg.startswith("-") or arg == "-":
            return None
        if arg.startswith("--"):
            if "=" not in arg and arg in _VALUE_OPTIONS:
                i += 1
        else:
            # short cluster like -kp NAME or -pNAME
            for pos, flag in enumerate(arg[1:], start=1):
                if "-" + flag in _VALUE_OPTIONS:
                    if pos == len(arg) - 1:
                        i += 1
                    break
        i += 1
    return None


def parse_args(argv: list[str]):
    """Parse options, taking everything after ``--`` verbatim as the command."""
    parser = build_parser()
    split = _separator_index(argv)
    if split is not None:
        args = parser.parse_args(argv[:split])
        args.command = argv[split + 1:]
    else:
        args = parser.parse_args(argv)
    return parser, args


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        stream=sys.stderr,
    )

    parser, args = parse_args(argv)
    try:
        config = load_config(args, load_yaml_config(args.config))
    except ConfigError as exc:
        parser.print_usage(sys.stderr)
        print(f"logto: error: {exc}", file=sys.stderr)
        return exc.exit_status

    logging.getLogger().setLevel(config.log_level)
    logger.debug("Config: %s", config)

    try:
        return run(config)
    except LogtoError as exc:
        logger.debug("Fatal error", exc_info=True)
        print(f"logto: {exc}", file=sys.stderr)
        return exc.exit_status
