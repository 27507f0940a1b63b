"""Caffeine server entry point.

    python3 caffeine.py --backend file --data-dir ./data --enable-broker
    python3 caffeine.py --config caffeine.yml
    python3 caffeine.py --print-template > caffeine.yml
"""
import sys

from caffeine_lib.config import config_from_args, parse_args, template_yaml
from caffeine_lib.main import create_app


def main(argv=None) -> int:
    args = parse_args(argv)
    if args.print_template:
        sys.stdout.write(template_yaml())
        return 0

    cfg = config_from_args(args)
    app = create_app(cfg)

    import uvicorn
    uvicorn.run(app, host=cfg.host, port=cfg.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
