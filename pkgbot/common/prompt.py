"""
Confirmation prompt used before mutating actions.

The prompt is a small state machine:

    PENDING --y/Enter--> CONFIRMED      (this item only, back to PENDING next time)
    PENDING --n--------> DECLINED
    PENDING --a--------> CONFIRMED_ALL  (sticky: every later item is confirmed)
    PENDING --q--------> ABORTED        (sticky: raises PromptAborted)

Input comes from an injectable ``reader`` callable so tests never need a terminal.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from pkgbot.common.errors import PromptAborted

logger = logging.getLogger(__name__)


class PromptState(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CONFIRMED_ALL = "confirmed-all"
    DECLINED = "declined"
    ABORTED = "aborted"


ANSWERS = {
    "y": PromptState.CONFIRMED,
    "yes": PromptState.CONFIRMED,
    "": PromptState.CONFIRMED,
    "n": PromptState.DECLINED,
    "no": PromptState.DECLINED,
    "a": PromptState.CONFIRMED_ALL,
    "all": PromptState.CONFIRMED_ALL,
    "q": PromptState.ABORTED,
    "quit": PromptState.ABORTED,
}


class ConfirmationPrompt:
    """yes / no / all / quit confirmation shared by install and cleanup runs"""

    def __init__(self, interactive: bool = True, reader: Optional[Callable[[str], str]] = None,
                 default_yes: bool = True):
        self.interactive = interactive
        self.reader = reader or input
        # Cleanup prompts default to "no" on a bare Enter
        self.default_yes = default_yes
        self.state = PromptState.PENDING

    @property
    def confirm_all(self) -> bool:
        return self.state == PromptState.CONFIRMED_ALL

    def transition(self, answer: str) -> PromptState:
        """Apply one raw answer; unrecognized input keeps the prompt PENDING"""
        if self.state in (PromptState.CONFIRMED_ALL, PromptState.ABORTED):
            return self.state

        key = answer.strip().lower()
        if key == "" and not self.default_yes:
            return PromptState.DECLINED
        return ANSWERS.get(key, PromptState.PENDING)

    def ask(self, label: str) -> bool:
        """
        Ask once for ``label``. Returns True when the action may proceed.

        Raises:
            PromptAborted: operator answered quit (now or earlier in the run)
        """
        if self.state == PromptState.ABORTED:
            raise PromptAborted("Aborted by user.")

        if not self.interactive or self.state == PromptState.CONFIRMED_ALL:
            return True

        choices = "[Y]es/[n]o/[a]ll/[q]uit" if self.default_yes else "[y]es/[N]o/[a]ll/[q]uit"
        while True:
            try:
                answer = self.reader(f"[PROMPT] {label}? {choices}: ")
            except EOFError:
                answer = "q"

            outcome = self.transition(answer)
            if outcome == PromptState.PENDING:
                continue

            if outcome in (PromptState.CONFIRMED_ALL, PromptState.ABORTED):
                self.state = outcome
            else:
                self.state = PromptState.PENDING

            if outcome == PromptState.ABORTED:
                logger.error("Aborted by user.")
                raise PromptAborted("Aborted by user.")

            return outcome != PromptState.DECLINED
