from datetime import datetime, timedelta, timezone

# Scenario origin (Bengaluru)
ORIGIN = (77.59, 12.97)

# metres per degree of latitude on the mean sphere
M_PER_DEG_LAT = 111_195.08


class FakeClock:
    def __init__(self, start: datetime = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def north_of(point, meters):
    lon, lat = point
    return (lon, lat + meters / M_PER_DEG_LAT)


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
