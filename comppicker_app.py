#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import os

from comppicker.config import AppPaths
from comppicker.ui_app import ComponentPickerApp

def main() -> None:
    ap = argparse.ArgumentParser(description="Choose installer components")
    ap.add_argument("--data", default="components.json", help="catalogue/config JSON")
    ap.add_argument("--log-file", default=None, help="log file (default: ~/.cache/comppicker/comppicker.log)")
    ap.add_argument("--debug", action="store_true", help="log at DEBUG level")
    args = ap.parse_args()

    paths = AppPaths.default()
    log_file = args.log_file or paths.log_file
    os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
    logging.basicConfig(
        filename=log_file,
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ComponentPickerApp(data_path=args.data, paths=paths).run()

if __name__ == "__main__":
    main()
