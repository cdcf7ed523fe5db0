class DashboardState:
    def __init__(self):
        self.sids: set[str] = set()

    def add(self, sid: str):
        self.sids.add(sid)

    def discard(self, sid: str):
        self.sids.discard(sid)

    def count(self) -> int:
        return len(self.sids)


dashboard_state = DashboardState()
