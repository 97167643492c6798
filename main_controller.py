import argparse
import logging
import sys
from datetime import datetime
from typing import Optional

import browser_launcher
from coordinates import Coordinate
from location_app import HOST, PORT, BindError, HandshakeServer

RULE = "=" * 60


# ----------------------------
# CONSOLE OUTPUT
# ----------------------------
def report_location(coordinate: Coordinate) -> None:
    stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"\n[{stamp}] 📍 New location fix:")
    print(f"  Latitude:  {coordinate.latitude:.8f}°")
    print(f"  Longitude: {coordinate.longitude:.8f}°")
    print(f"  Accuracy:  {coordinate.accuracy:.2f}m")
    print(f"  Google Maps: {coordinate.maps_url}")
    print(RULE)


# ----------------------------
# ACQUISITION
# ----------------------------
def acquire_location(
    host: str = HOST,
    port: int = PORT,
    timeout: Optional[float] = None,
    open_browser: bool = True,
    close_browser: bool = False,
) -> Optional[Coordinate]:
    """Open the browser on the local page and block until it reports a position.

    Raises BindError if the listener cannot be bound. Returns None only when
    `timeout` runs out before a valid report arrives.
    """
    with HandshakeServer(host=host, port=port) as server:
        print("\n🚀 Starting location tracking...")
        print(f"🌐 Waiting for the browser at {server.url}\n")
        print(RULE)

        if open_browser:
            browser_launcher.open_browser_later(server.url)

        coordinate = server.serve(timeout=timeout)

    if coordinate is None:
        print("⏳ No location received.")
        return None

    report_location(coordinate)
    if close_browser:
        browser_launcher.close_browser_later()
    return coordinate


# ----------------------------
# MAIN ENTRY POINT
# ----------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Get the current location through the default browser")
    parser.add_argument("--timeout", type=float, default=None, help="Give up after this many seconds")
    parser.add_argument("--no-browser", action="store_true", help="Do not open the browser automatically")
    parser.add_argument("--close-browser", action="store_true", help="Try to close the browser afterwards")
    parser.add_argument("--verbose", action="store_true", help="Log every request")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("werkzeug").setLevel(logging.INFO if args.verbose else logging.WARNING)

    try:
        coordinate = acquire_location(
            timeout=args.timeout,
            open_browser=not args.no_browser,
            close_browser=args.close_browser,
        )
    except BindError as exc:
        print(f"⚠️ {exc}", file=sys.stderr)
        return 2
    return 0 if coordinate is not None else 1


if __name__ == "__main__":
    sys.exit(main())
