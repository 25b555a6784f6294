from __future__ import annotations

import argparse
import json

from authsession.core.config import load_config
from authsession.core.events import redact


def main() -> None:
    ap = argparse.ArgumentParser(description="Print the effective session client configuration.")
    ap.add_argument("--config", default=None)
    args = ap.parse_args()
    cfg = load_config(args.config)
    print(json.dumps(redact(cfg.model_dump()), indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
