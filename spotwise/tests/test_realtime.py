import asyncio

from spotwise.core.enums import EventKind, RequestStatus
from spotwise.core.throttle import LocationThrottle
from spotwise.geo.spherical import GeoPoint
from spotwise.realtime.bus import EventBus
from spotwise.realtime.events import DomainEvent
from spotwise.realtime.notifier import RealtimeNotifier
from spotwise.tests.helpers import ORIGIN, north_of


def _ev(data=1):
    return DomainEvent(EventKind.HEARTBEAT, data)


# ---------------------------
# BUS
# ---------------------------

def test_publish_reaches_every_connection_of_an_actor():
    bus = EventBus(queue_size=10)

    async def run():
        a1 = bus.subscribe("a")
        a2 = bus.subscribe("a")
        b = bus.subscribe("b")
        # handlers publish from the threadpool
        scheduled = await asyncio.to_thread(bus.publish, ["a"], _ev("x"))
        assert scheduled == 2
        assert (await a1.next_event(timeout=1)).data == "x"
        assert (await a2.next_event(timeout=1)).data == "x"
        assert await b.next_event(timeout=0.05) is None

    asyncio.run(run())


def test_full_queue_drops_instead_of_blocking():
    bus = EventBus(queue_size=1)

    async def run():
        sub = bus.subscribe("a")
        bus.publish(["a"], _ev(1))
        bus.publish(["a"], _ev(2))
        await asyncio.sleep(0)
        assert (await sub.next_event(timeout=1)).data == 1
        assert await sub.next_event(timeout=0.05) is None

    asyncio.run(run())


def test_watchers_and_unsubscribe():
    bus = EventBus()

    async def run():
        seeker = bus.subscribe("s")
        other = bus.subscribe("t")
        bus.watch(seeker, ["p1"])
        assert bus.publish_to_watchers("p1", _ev()) == 1
        assert bus.publish_to_watchers("p1", _ev(), exclude=["s"]) == 0
        assert bus.publish_to_watchers("p2", _ev()) == 0
        assert await other.next_event(timeout=0.05) is None

        bus.unsubscribe(seeker)
        assert not bus.is_connected("s")
        assert bus.publish(["s"], _ev()) == 0

    asyncio.run(run())


def test_publish_to_closed_loop_never_raises():
    bus = EventBus()

    async def run():
        bus.subscribe("a")

    asyncio.run(run())
    assert bus.publish(["a"], _ev()) == 0
    assert not bus.is_connected("a")


# ---------------------------
# THROTTLE
# ---------------------------

def test_throttle_move_distance_and_staleness():
    now = [0.0]
    throttle = LocationThrottle(min_move_m=10, max_stale_seconds=60, clock=lambda: now[0])
    start = GeoPoint(*ORIGIN)

    assert throttle.allow("p", start) is True
    assert throttle.allow("p", GeoPoint(*north_of(ORIGIN, 5))) is False

    assert throttle.allow("p", GeoPoint(*north_of(ORIGIN, 25))) is True

    now[0] = 61.0
    assert throttle.allow("p", GeoPoint(*north_of(ORIGIN, 25))) is True
    # other providers are tracked separately
    assert throttle.allow("q", start) is True


# ---------------------------
# NOTIFIER
# ---------------------------

class FakeBus:
    def __init__(self):
        self.sent = []
        self.watched = []

    def publish(self, actor_ids, event):
        self.sent.append((sorted(actor_ids), event))
        return len(actor_ids)

    def publish_to_watchers(self, provider_id, event, exclude=()):
        self.watched.append((provider_id, event))
        return 0


def test_request_changed_hides_pin_from_provider(db, svc, make_actor, make_request):
    seeker = make_actor("seeker")
    provider = make_actor("provider")
    req = make_request(seeker)
    accepted = svc.lifecycle.accept(db, provider.principal, req.id)

    bus = FakeBus()
    RealtimeNotifier(bus, svc.store, LocationThrottle(10, 60)).request_changed(accepted)

    by_actor = {tuple(ids): ev for ids, ev in bus.sent}
    to_seeker = by_actor[(str(seeker.id),)]
    to_provider = by_actor[(str(provider.id),)]
    assert to_seeker.kind is EventKind.REQUEST_UPDATED
    assert to_seeker.data["status"] == RequestStatus.IN_PROGRESS.value
    assert to_seeker.data["generatedPin"] == accepted.pin
    assert to_provider.data["generatedPin"] is None


def test_request_created_targets_online_skilled_providers_in_radius(db, svc, make_actor, make_request):
    bus = FakeBus()
    svc.notifier.bus = bus

    near = make_actor("provider", at=north_of(ORIGIN, 1500))
    make_actor("provider", at=north_of(ORIGIN, 9000))
    make_actor("provider", at=north_of(ORIGIN, 1000), skills=["carpentry"])
    make_actor("provider", at=north_of(ORIGIN, 500), online=False)
    make_request(make_actor("seeker"))

    new_requests = [(ids, ev) for ids, ev in bus.sent if ev.kind is EventKind.NEW_REQUEST]
    assert len(new_requests) == 1
    assert new_requests[0][0] == [str(near.id)]


def test_provider_moved_reaches_served_seeker_and_is_throttled(db, svc, make_actor, make_request):
    seeker = make_actor("seeker")
    provider = make_actor("provider")
    req = make_request(seeker)
    svc.lifecycle.accept(db, provider.principal, req.id)

    bus = FakeBus()
    svc.notifier.bus = bus

    assert svc.locations.update_location(db, provider.principal, *north_of(ORIGIN, 100)) is True
    assert svc.locations.update_location(db, provider.principal, *north_of(ORIGIN, 103)) is False

    moves = [(ids, ev) for ids, ev in bus.sent if ev.kind is EventKind.PROVIDER_LOCATION]
    assert len(moves) == 1
    assert moves[0][0] == [str(seeker.id)]
    assert moves[0][1].data["providerId"] == str(provider.id)
    # the live record is written even when the broadcast is throttled
    assert svc.geo.get_location(db, provider.id) == GeoPoint(*north_of(ORIGIN, 103))


def test_provider_left_resets_throttle(db, svc, make_actor):
    provider = make_actor("provider")
    spot = GeoPoint(*north_of(ORIGIN, 100))
    svc.notifier.bus = FakeBus()

    assert svc.notifier.provider_moved(db, provider.id, spot) is True
    assert svc.notifier.provider_moved(db, provider.id, spot) is False

    svc.notifier.provider_left(str(provider.id))
    assert svc.notifier.provider_moved(db, provider.id, spot) is True
