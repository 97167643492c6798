import unittest
from unittest import mock

import browser_launcher

URL = "http://127.0.0.1:3030"


class TestBrowserCommands(unittest.TestCase):
    def test_open_command_per_platform(self):
        self.assertEqual(browser_launcher.open_command(URL, "win32"), ["cmd", "/C", "start", "", URL])
        self.assertEqual(browser_launcher.open_command(URL, "darwin"), ["open", URL])
        self.assertEqual(browser_launcher.open_command(URL, "linux"), ["xdg-open", URL])

    def test_close_command_per_platform(self):
        self.assertEqual(browser_launcher.close_command("win32")[0], "taskkill")
        self.assertEqual(browser_launcher.close_command("darwin")[0], "osascript")
        self.assertEqual(browser_launcher.close_command("linux")[0], "pkill")


class TestRunDetached(unittest.TestCase):
    def test_missing_program_is_ignored(self):
        with mock.patch("browser_launcher.subprocess.Popen", side_effect=FileNotFoundError("xdg-open")):
            self.assertFalse(browser_launcher.run_detached(["xdg-open", URL]))

    def test_started_program_is_not_waited_for(self):
        with mock.patch("browser_launcher.subprocess.Popen") as popen:
            self.assertTrue(browser_launcher.run_detached(["open", URL]))

        popen.assert_called_once()
        self.assertEqual(popen.call_args.args[0], ["open", URL])
        popen.return_value.wait.assert_not_called()


class TestLaunchLater(unittest.TestCase):
    def test_open_browser_later_runs_on_daemon_thread(self):
        with mock.patch("browser_launcher.run_detached") as run:
            thread = browser_launcher.open_browser_later(URL, delay=0)
            thread.join(5)

        self.assertTrue(thread.daemon)
        run.assert_called_once_with(browser_launcher.open_command(URL))

    def test_close_browser_later_swallows_failures(self):
        with mock.patch("browser_launcher.subprocess.Popen", side_effect=OSError("denied")):
            thread = browser_launcher.close_browser_later()
            thread.join(5)

        self.assertFalse(thread.is_alive())


if __name__ == "__main__":
    unittest.main()
