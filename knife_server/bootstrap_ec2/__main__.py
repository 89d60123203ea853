from dotenv import load_dotenv

from ..utils.logger import configure_logger
from .command import BootstrapCommand
from .options import build_config, make_parser


def main(argv=None):
    parser = make_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    configure_logger(args.verbose)

    config = build_config(args)
    BootstrapCommand(config).run()


if __name__ == "__main__":
    main()
