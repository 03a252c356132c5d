import pytest

from chessview.board import BoardView, Scheduler


class RecordingBoard(BoardView):
    """
    Keeps every synced state. Promotion prompts are answered with
    `promotion_choice`, or held in `pending_promotions` when
    `defer_promotion` is set so a test can resolve them later.
    """

    def __init__(self):
        self.states = []
        self.hints = []
        self.promotion_requests = []
        self.pending_promotions = []
        self.promotion_choice = "q"
        self.defer_promotion = False

    @property
    def state(self):
        return self.states[-1] if self.states else None

    def sync(self, state):
        self.states.append(state)

    def request_promotion(self, square, color, callback):
        self.promotion_requests.append((square, color))
        if self.defer_promotion:
            self.pending_promotions.append(callback)
        else:
            callback(self.promotion_choice)

    def show_hint(self, square, duration_ms):
        self.hints.append((square, duration_ms))


class ManualHandle:
    def __init__(self, delay_ms, callback):
        self.delay_ms = delay_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Timers fire only when a test calls run_next() / run_all()."""

    def __init__(self):
        self.handles = []

    def call_later(self, delay_ms, callback):
        handle = ManualHandle(delay_ms, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def run_next(self) -> bool:
        pending = self.pending
        if not pending:
            return False
        handle = pending[0]
        self.handles.remove(handle)
        handle.callback()
        return True

    def run_all(self, limit=100):
        count = 0
        while count < limit and self.run_next():
            count += 1
        return count


@pytest.fixture()
def board():
    return RecordingBoard()


@pytest.fixture()
def scheduler():
    return ManualScheduler()
