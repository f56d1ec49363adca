from __future__ import annotations

from uuid import UUID, uuid4


class ComposeBox:
    """Text the user is writing, plus the token of a failed submission.

    After a failure the submitted text is put back verbatim. Resubmitting that
    same text reuses the failed token so the server can recognise a retry of a
    send that did reach it.
    """

    def __init__(self) -> None:
        self.text = ""
        self._retry: tuple[str, UUID] | None = None

    def edit(self, text: str) -> None:
        self.text = text

    def take(self) -> tuple[str, UUID] | None:
        """Clear the box and return (text, token), or None when there is nothing to send."""
        text = self.text
        if not text.strip():
            return None
        if self._retry is not None and self._retry[0] == text:
            token = self._retry[1]
        else:
            token = uuid4()
        self.text = ""
        return text, token

    def restore(self, text: str, token: UUID) -> None:
        self.text = text
        self._retry = (text, token)

    def succeeded(self) -> None:
        self._retry = None
