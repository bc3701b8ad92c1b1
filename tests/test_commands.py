"""
Privileged command parser
"""

import unittest

import helpers  # noqa: F401

from relay import commands
from relay.commands import parse_command
from relay.errors import InputInvalid


class ParseCommandTest(unittest.TestCase):

    def test_slowmode_toggle(self):
        self.assertEqual(parse_command("server init slowmode on"), commands.SlowModeToggle(True))
        self.assertEqual(parse_command("SERVER INIT SLOWMODE OFF"), commands.SlowModeToggle(False))

    def test_slowmode_interval(self):
        self.assertEqual(parse_command("server init slowmode 3.5"), commands.SlowModeInterval(3.5))

    def test_slowmode_interval_rejects_bad_numbers(self):
        for arg in ("abc", "0", "-2", "inf", "nan", ""):
            with self.assertRaises(InputInvalid, msg=arg):
                parse_command(f"server init slowmode {arg}")

    def test_targeted_commands_keep_name_case(self):
        self.assertEqual(parse_command("server init kick BoB"), commands.Kick("BoB"))
        self.assertEqual(parse_command("server init ban Amy Lee"), commands.Ban("Amy Lee"))
        self.assertEqual(parse_command("server init unban amy"), commands.Unban("amy"))
        self.assertEqual(parse_command("server init block eve"), commands.Block("eve"))

    def test_targeted_commands_need_a_name(self):
        for kw in ("kick", "ban", "unban", "block"):
            with self.assertRaises(InputInvalid):
                parse_command(f"server init {kw}")

    def test_password_and_broadcast(self):
        self.assertEqual(parse_command("server init password S3cret!"), commands.ChangePassword("S3cret!"))
        self.assertEqual(parse_command("server init broadcast Hello All"), commands.Broadcast("Hello All"))

        with self.assertRaises(InputInvalid):
            parse_command("server init password")
        with self.assertRaises(InputInvalid):
            parse_command("server init broadcast   ")

    def test_broadcast_length_cap(self):
        self.assertEqual(parse_command("server init broadcast " + "a" * 1000), commands.Broadcast("a" * 1000))
        with self.assertRaises(InputInvalid):
            parse_command("server init broadcast " + "a" * 1001)

    def test_simple_keywords(self):
        self.assertEqual(parse_command("server init disable"), commands.SetTempDisable(True))
        self.assertEqual(parse_command("server init enable"), commands.SetTempDisable(False))
        self.assertEqual(parse_command("server init clear"), commands.ClearHistory())
        self.assertEqual(parse_command("server init shutdown"), commands.Shutdown(restart=False))
        self.assertEqual(parse_command("server init restart"), commands.Shutdown(restart=True))
        self.assertEqual(parse_command("server init help"), commands.Help())

    def test_unknown(self):
        self.assertEqual(parse_command("server init dance now"), commands.Unknown("dance now"))


if __name__ == "__main__":
    unittest.main()
