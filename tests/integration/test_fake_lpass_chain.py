"""
Integration: LastPassDataSource → InteractiveProcess → scripted lpass.

Every test spawns the fake executable for real: pipes, reader threads,
the master-password reply on stdin and deadline kills all run as they
would against the real client.
"""

import json
import time

from click.testing import CliRunner

from lpass_bridge.core.engine.errors import ErrorKind
from lpass_bridge.core.services.lastpass_recipes import LIST_FORMAT
from lpass_bridge.core.services.lastpass_source import LIST_FAILED, LastPassDataSource
from lpass_bridge.main import cli
from tests.doubles import PromptRecorder, RecordingNotifier


def _source(fake_lpass, prompt=None, notifier=None, **overrides):
    return LastPassDataSource(
        settings=fake_lpass.settings(**overrides),
        prompt=prompt or PromptRecorder(),
        notifier=notifier or RecordingNotifier(),
    )


# ═══════════════════════════════════════════════════════════════════
#  1. Single commands
# ═══════════════════════════════════════════════════════════════════


class TestSingleCommands:
    def test_list(self, fake_lpass):
        fake_lpass.script({"ls": {"stdout": "123\tMyBank\tuser1\n0\tBadRow\tuser2\n"}})
        source = _source(fake_lpass)

        accounts = source.accounts()
        assert [a.identifier.value for a in accounts] == ["123"]

        [call] = fake_lpass.calls()
        assert call["args"] == ["ls", LIST_FORMAT, "iTerm2"]
        assert call["askpass"] == source.settings.askpass_path
        assert "HOME" in call["env_keys"]

    def test_fetch_password(self, fake_lpass):
        fake_lpass.script({"show --password 42": {"stdout": "s3cret\n"}})
        assert _source(fake_lpass).fetch_password("42") == "s3cret"

    def test_set_password_payload(self, fake_lpass):
        fake_lpass.script({"edit": {"read_stdin": True}})
        assert _source(fake_lpass).set_password("42", "n3w") is True
        [call] = fake_lpass.calls()
        assert call["args"] == ["edit", "--non-interactive", "--password", "42"]
        assert call["stdin"] == "n3w\n"

    def test_delete_failure(self, fake_lpass):
        fake_lpass.script(
            {"rm": {"stderr": "Error: Could not find specified account.\n", "exit": 1}}
        )
        notifier = RecordingNotifier()
        assert _source(fake_lpass, notifier=notifier).delete("42") is False
        [(error, _)] = notifier.failures
        assert error.kind == ErrorKind.RUNTIME_FAILURE
        assert "Could not find" in error.message


# ═══════════════════════════════════════════════════════════════════
#  2. add → sync → show
# ═══════════════════════════════════════════════════════════════════


class TestAddChain:
    def test_add_returns_synced_id(self, fake_lpass):
        fake_lpass.script(
            {
                "add": {"read_stdin": True},
                "sync": {},
                "show": {"stdout": "iTerm2/MyBank [id: 777]\n777\n"},
            }
        )
        identifier = _source(fake_lpass).add("user1", "MyBank", "pw")
        assert identifier.value == "777"

        calls = fake_lpass.calls()
        assert [c["args"] for c in calls] == [
            ["add", "iTerm2/MyBank", "--non-interactive"],
            ["sync", "now"],
            ["show", "--id", "iTerm2/MyBank"],
        ]
        assert calls[0]["stdin"] == "Username: user1\nPassword: pw"

    def test_unsynced_record(self, fake_lpass):
        fake_lpass.script({"add": {"read_stdin": True}, "show": {"stdout": "0\n"}})
        notifier = RecordingNotifier()
        assert _source(fake_lpass, notifier=notifier).add("u", "MyBank", "pw") is None
        assert notifier.failures[0][0].kind == ErrorKind.SYNC_FAILED

    def test_failed_add_runs_nothing_else(self, fake_lpass):
        fake_lpass.script({"add": {"read_stdin": True, "exit": 1}})
        assert _source(fake_lpass).add("u", "MyBank", "pw") is None
        assert len(fake_lpass.calls()) == 1


# ═══════════════════════════════════════════════════════════════════
#  3. Authentication
# ═══════════════════════════════════════════════════════════════════


class TestAuthentication:
    def test_master_password_answered_on_stdin(self, fake_lpass):
        fake_lpass.script(
            {
                "ls": {
                    "prompt": "Master Password: ",
                    "expect": "hunter2",
                    "stdout": "1\tMail\tme\n",
                }
            }
        )
        prompt = PromptRecorder("hunter2")
        accounts = _source(fake_lpass, prompt=prompt).accounts()
        assert [a.account_name for a in accounts] == ["Mail"]
        assert prompt.count == 1
        assert fake_lpass.calls()[0]["answer"] == "hunter2"

    def test_wrong_password_fails(self, fake_lpass):
        fake_lpass.script({"ls": {"prompt": "Master Password: ", "expect": "right"}})
        notifier = RecordingNotifier()
        source = _source(fake_lpass, prompt=PromptRecorder("wrong"), notifier=notifier)
        assert source.accounts() is None
        assert notifier.failures[0][0].kind == ErrorKind.RUNTIME_FAILURE

    def test_login_required(self, fake_lpass):
        fake_lpass.script(
            {
                "ls": {
                    "stderr": "Error: Could not find decryption key. "
                    "Perhaps you need to login with `lpass login`.\n",
                    "exit": 1,
                }
            }
        )
        notifier = RecordingNotifier()
        assert _source(fake_lpass, notifier=notifier).accounts() is None
        assert notifier.logins == 1
        assert notifier.failures == []


# ═══════════════════════════════════════════════════════════════════
#  4. Deadlines and broken binaries
# ═══════════════════════════════════════════════════════════════════


class TestFailureModes:
    def test_list_deadline_kills_process(self, fake_lpass):
        fake_lpass.script({"ls": {"sleep": 30, "stdout": "1\tA\tb\n"}})
        notifier = RecordingNotifier()
        source = _source(fake_lpass, notifier=notifier, list_timeout=0.5)

        started = time.monotonic()
        assert source.accounts() is None
        assert time.monotonic() - started < 10
        assert notifier.timeouts == [LIST_FAILED]

    def test_missing_binary(self, fake_lpass, tmp_path):
        notifier = RecordingNotifier()
        source = _source(fake_lpass, notifier=notifier, cli_path=str(tmp_path / "no-lpass"))
        assert source.accounts() is None
        assert notifier.failures[0][0].kind == ErrorKind.UNUSABLE_BINARY
        assert fake_lpass.calls() == []

    def test_availability(self, fake_lpass):
        fake_lpass.script({"status": {"stdout": "Logged in as user@example.com.\n"}})
        assert _source(fake_lpass).check_availability() is True

    def test_availability_not_logged_in(self, fake_lpass):
        fake_lpass.script({"status": {"stdout": "Not logged in.\n", "exit": 1}})
        notifier = RecordingNotifier()
        assert _source(fake_lpass, notifier=notifier).check_availability() is False
        assert notifier.logins == 1


# ═══════════════════════════════════════════════════════════════════
#  5. CLI end to end
# ═══════════════════════════════════════════════════════════════════


class TestCLIEndToEnd:
    def _config(self, fake_lpass, tmp_path):
        config = tmp_path / "lpass-bridge.yml"
        config.write_text(
            f"lastpass:\n"
            f"  cli_path: {fake_lpass.path}\n"
            f"  namespace: iTerm2\n"
            f"  home: {fake_lpass.home}\n"
        )
        return config

    def test_accounts_ls_json(self, fake_lpass, tmp_path):
        fake_lpass.script({"ls": {"stdout": "123\tMyBank\tuser1\n"}})
        config = self._config(fake_lpass, tmp_path)
        result = CliRunner().invoke(cli, ["--config", str(config), "accounts", "ls", "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert [a["account_name"] for a in data] == ["MyBank"]

    def test_status(self, fake_lpass, tmp_path):
        fake_lpass.script({"status": {"stdout": "Logged in.\n"}})
        config = self._config(fake_lpass, tmp_path)
        result = CliRunner().invoke(cli, ["--config", str(config), "status", "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["available"] is True
