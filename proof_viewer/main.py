"""Main entry point for the BAT proof viewer."""
import argparse
import logging
import sys
from typing import List, Optional

import httpx
from PySide6.QtWidgets import QApplication, QMessageBox

from proof_viewer.api_client import ProofApiClient
from proof_viewer.models import ViewerSettings
from proof_viewer.proof_window import ProofWindow


def parse_args(argv: Optional[List[str]] = None) -> ViewerSettings:
    parser = argparse.ArgumentParser(description="Review and annotate a BAT proof.")
    parser.add_argument("--api", default=ViewerSettings.api_url, help="proof server base URL")
    parser.add_argument("--proof", dest="proof_id", help="proof id to open from the server")
    parser.add_argument("--pdf", dest="pdf_path", help="local PDF (overrides the proof's fileRef)")
    parser.add_argument("--mode", choices=["admin", "client"], default="admin")
    parser.add_argument("--data-dir", default=ViewerSettings.data_dir,
                        help="where local annotation snapshots are kept")
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args(argv)
    return ViewerSettings(
        api_url=args.api,
        proof_id=args.proof_id,
        pdf_path=args.pdf_path,
        mode=args.mode,
        data_dir=args.data_dir,
        debug=args.debug,
    )


def main(argv: Optional[List[str]] = None):
    settings = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    app = QApplication(sys.argv[:1])
    app.setApplicationName("BAT Viewer")
    api = ProofApiClient(settings.api_url) if settings.proof_id else None
    window = ProofWindow(settings, api)
    try:
        window.load()
    except (httpx.HTTPError, OSError, RuntimeError, ValueError) as e:
        logging.getLogger(__name__).error("Could not open proof: %s", e)
        QMessageBox.critical(None, "BAT Viewer", f"Could not open proof:\n{e}")
        sys.exit(1)
    window.show()
    code = app.exec()
    if api is not None:
        api.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
