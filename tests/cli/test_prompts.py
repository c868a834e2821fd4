"""
Tests for the console and automatic prompters.
"""

from devstrap.cli.prompts import AutoPrompter, ConsolePrompter


def scripted_input(*responses):
    answers = list(responses)
    prompts = []

    def fake_input(prompt):
        prompts.append(prompt)
        if not answers:
            raise EOFError
        return answers.pop(0)

    fake_input.prompts = prompts
    return fake_input


class TestConsolePrompter:
    """Tests for ConsolePrompter."""

    def test_confirm_yes(self):
        assert ConsolePrompter(scripted_input("y")).confirm("Proceed?") is True

    def test_confirm_empty_takes_default(self):
        fake = scripted_input("")
        assert ConsolePrompter(fake).confirm("Proceed?", default=True) is True
        assert fake.prompts == ["Proceed? [Y/n] "]

    def test_confirm_reasks_on_garbage(self, capsys):
        fake = scripted_input("maybe", "NO")
        assert ConsolePrompter(fake).confirm("Proceed?") is False
        assert len(fake.prompts) == 2
        assert "Please answer" in capsys.readouterr().out

    def test_confirm_eof_takes_default(self):
        assert ConsolePrompter(scripted_input()).confirm("Proceed?", default=False) is False

    def test_ask_shows_default(self):
        fake = scripted_input("")
        assert ConsolePrompter(fake).ask("Git user.name", "Ada") == "Ada"
        assert fake.prompts == ["Git user.name [Ada] "]

    def test_ask_returns_answer(self):
        assert ConsolePrompter(scripted_input("  Grace ")).ask("Name") == "Grace"


class TestAutoPrompter:
    """Tests for the --yes prompter."""

    def test_confirms_everything(self):
        prompter = AutoPrompter()
        assert prompter.confirm("Replace it?", default=False) is True
        assert prompter.ask("Git user.email", "ada@example.com") == "ada@example.com"
