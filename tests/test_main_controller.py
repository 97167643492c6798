import io
import socket
import threading
import unittest
from contextlib import redirect_stdout
from unittest import mock

import requests

import main_controller
from coordinates import Coordinate
from location_app import BindError

VALID = {"latitude": 37.5665, "longitude": 126.9780, "accuracy": 12.5, "timestamp": 1700000000000}


def fake_browser(payload):
    """Stands in for the real browser: posts `payload` once the URL is opened."""

    def open_browser_later(url, delay=0.0):
        def run():
            requests.post(url + "/update", json=payload, timeout=5)

        thread = threading.Thread(target=run, daemon=True)
        thread.start()
        return thread

    return open_browser_later


class TestAcquireLocation(unittest.TestCase):
    def test_returns_reported_coordinate_and_prints_it(self):
        output = io.StringIO()
        with mock.patch("main_controller.browser_launcher.open_browser_later", side_effect=fake_browser(VALID)), \
                mock.patch("main_controller.browser_launcher.close_browser_later") as close_later, \
                redirect_stdout(output):
            coordinate = main_controller.acquire_location(port=0, timeout=10, close_browser=True)

        self.assertEqual(coordinate.as_list(), [37.5665, 126.9780, 12.5])
        close_later.assert_called_once_with()
        text = output.getvalue()
        self.assertIn("Latitude:  37.56650000°", text)
        self.assertIn("Longitude: 126.97800000°", text)
        self.assertIn("Accuracy:  12.50m", text)
        self.assertIn("Google Maps: https://www.google.com/maps?q=37.5665,126.978", text)

    def test_timeout_returns_none(self):
        with mock.patch("main_controller.browser_launcher.close_browser_later") as close_later, \
                redirect_stdout(io.StringIO()):
            coordinate = main_controller.acquire_location(
                port=0, timeout=0.2, open_browser=False, close_browser=True
            )

        self.assertIsNone(coordinate)
        close_later.assert_not_called()

    def test_listener_released_when_startup_fails(self):
        opened = []

        def broken_launcher(url, delay=0.0):
            opened.append(url)
            raise RuntimeError("launcher exploded")

        with mock.patch("main_controller.browser_launcher.open_browser_later", side_effect=broken_launcher), \
                redirect_stdout(io.StringIO()):
            with self.assertRaises(RuntimeError):
                main_controller.acquire_location(port=0, timeout=5)

        port = int(opened[0].rsplit(":", 1)[1])
        with socket.create_server(("127.0.0.1", port)):
            pass


class TestMain(unittest.TestCase):
    def test_exit_codes(self):
        cases = {
            0: {"return_value": Coordinate.from_dict(VALID)},
            1: {"return_value": None},
            2: {"side_effect": BindError("cannot listen on 127.0.0.1:3030")},
        }
        for expected, behaviour in cases.items():
            with self.subTest(expected):
                with mock.patch("main_controller.acquire_location", **behaviour) as acquire, \
                        redirect_stdout(io.StringIO()), \
                        mock.patch("sys.stderr", new_callable=io.StringIO):
                    self.assertEqual(main_controller.main(["--timeout", "3", "--no-browser"]), expected)

                acquire.assert_called_once_with(timeout=3.0, open_browser=False, close_browser=False)


if __name__ == "__main__":
    unittest.main()
