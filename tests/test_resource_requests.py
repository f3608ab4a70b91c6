"""Tests for supply/demand registration and matching."""
import unittest

from overmind.app.scenario import build_colony_room
from overmind.core.claims import ClaimSet
from overmind.core.objective_group import ObjectiveGroup
from overmind.core.objectives import DEFAULT_OBJECTIVE_PRIORITIES, ObjectiveType, make_objective
from overmind.core.resource_requests import (
    QUEUE_DEMAND,
    QUEUE_SUPPLY,
    RequestDirection,
    ResourceRequestGroup,
    TransportMode,
)
from overmind.core.roles import DEFAULT_CAPABILITIES
from overmind.core.tasks import TaskAction
from overmind.core.world import Position, Structure, StructureType, World
from overmind.io.config_loader import OverlordSettings, ThresholdConfig
from overmind.io.event_logger import EventLogger, EventType

from .helpers import make_creep, make_room, pos


def container(name, x, y, energy=0, tag=None, room="W1N1"):
    return Structure(name, Position(x, y, room), structure_type=StructureType.CONTAINER, hits=250000,
                     hits_max=250000, store={"energy": energy} if energy else {}, store_capacity=2000, tag=tag)


class TestRequestMatching(unittest.TestCase):

    def setUp(self):
        self.events = EventLogger()
        self.group = ResourceRequestGroup(ClaimSet(), events=self.events)
        self.near = container("near", 22, 20)
        self.far = container("far", 40, 20)
        self.world = World([make_room(structures=[self.near, self.far])])

    def test_empty_queue_returns_none(self):
        self.assertIsNone(self.group.get_prioritized_closest_request(pos(20, 20), QUEUE_SUPPLY))

    def test_unknown_queue_rejected(self):
        with self.assertRaises(ValueError):
            self.group.requests("sideways")

    def test_non_positive_amount_rejected(self):
        with self.assertRaises(ValueError):
            self.group.request_demand(self.near, 0)

    def test_urgency_beats_distance(self):
        self.group.request_demand(self.near, 100, urgency=0.2)
        self.group.request_demand(self.far, 100, urgency=0.9)
        best = self.group.get_prioritized_closest_request(pos(20, 20), QUEUE_DEMAND)
        self.assertEqual(best.target_id, "far")

    def test_distance_breaks_urgency_ties(self):
        self.group.request_demand(self.far, 100, urgency=0.5)
        self.group.request_demand(self.near, 100, urgency=0.5)
        best = self.group.get_prioritized_closest_request(pos(20, 20), QUEUE_DEMAND)
        self.assertEqual(best.target_id, "near")

    def test_registration_order_breaks_full_ties(self):
        left = container("left", 18, 20)
        self.group.request_demand(self.near, 100)
        self.group.request_demand(left, 100)
        best = self.group.get_prioritized_closest_request(pos(20, 20), QUEUE_DEMAND)
        self.assertEqual(best.target_id, "near")

    def test_mode_and_resource_filters(self):
        self.group.request_supply(self.near, 100, mode=TransportMode.HAUL)
        self.group.request_supply(self.far, 100, resource_type="H", mode=TransportMode.CARRY)
        self.assertIsNone(self.group.get_prioritized_closest_request(
            pos(20, 20), QUEUE_SUPPLY, mode=TransportMode.CARRY, resource_type="energy"))
        best = self.group.get_prioritized_closest_request(pos(20, 20), "resourceOut", mode="carry",
                                                           resource_type="H")
        self.assertEqual(best.target_id, "far")
        self.assertEqual(self.group.summary(), {
            "supply": {"haul": 1, "carry": 1},
            "demand": {"haul": 0, "carry": 0},
        })

    def test_claimed_exclusive_requests_skipped(self):
        self.group.request_demand(self.near, 100)
        self.group.request_demand(self.far, 100, exclusive=False)
        self.group.claims.claim("near", "someone")
        self.group.claims.claim("far", "someone")
        best = self.group.get_prioritized_closest_request(pos(20, 20), QUEUE_DEMAND)
        self.assertEqual(best.target_id, "far")

    def test_bind_request_claims_and_activates(self):
        request = self.group.request_supply(self.near, 100)
        creep = make_creep("h1", "hauler")
        ctx = self.world.snapshot()
        task = self.group.bind_request(creep, request, ctx)
        self.assertIs(creep.task, task)
        self.assertEqual(task.action, TaskAction.WITHDRAW)
        self.assertTrue(task.is_active)
        self.assertEqual(self.group.claims.holder("near"), "h1")
        self.assertEqual(len(self.events.events_of(EventType.REQUEST_MATCHED)), 1)
        self.assertIsNone(self.group.get_prioritized_closest_request(pos(20, 20), QUEUE_SUPPLY))

    def test_vanished_target_skipped_with_ctx(self):
        self.group.request_demand(self.near, 100)
        self.group.request_demand(self.far, 100)
        self.world.remove_object(self.near)
        best = self.group.get_prioritized_closest_request(pos(20, 20), QUEUE_DEMAND, ctx=self.world.snapshot())
        self.assertEqual(best.target_id, "far")
        self.assertEqual(self.group.claims.stale_count, 1)

    def test_shared_claims_with_objective_group(self):
        claims = ClaimSet()
        self.group.reset(claims)
        objectives = ObjectiveGroup(DEFAULT_OBJECTIVE_PRIORITIES, DEFAULT_CAPABILITIES, claims=claims,
                                    events=self.events)
        self.near.store["energy"] = 800
        request = self.group.request_supply(self.near, 800)
        objectives.register_objectives([make_objective(ObjectiveType.COLLECT_ENERGY_MINING_SITE, self.near)])
        ctx = self.world.snapshot()

        self.group.bind_request(make_creep("h1", "hauler"), request, ctx)
        self.assertIsNone(objectives.assign_task(make_creep("h2", "hauler"), ctx))


class TestRegisterFromRoom(unittest.TestCase):

    def setUp(self):
        self.group = ResourceRequestGroup(ClaimSet(), events=EventLogger())
        self.room = build_colony_room("W1N1")
        self.count = self.group.register_from_room(self.room, ThresholdConfig(), OverlordSettings())

    def _targets(self, queue, mode):
        return [r.target_id for r in self.group.requests(queue, mode=mode)]

    def test_hatchery_and_tower_demand(self):
        carry = self._targets(QUEUE_DEMAND, TransportMode.CARRY)
        # Spawn is full; the five empty extensions and the half-empty tower ask for energy
        self.assertNotIn("W1N1-spawn1", carry)
        self.assertEqual(sorted(carry), sorted([f"W1N1-ext{i}" for i in range(1, 6)] + ["W1N1-tower1"]))

    def test_container_requests(self):
        self.assertEqual(self._targets(QUEUE_SUPPLY, TransportMode.HAUL), ["W1N1-mine1"])
        self.assertEqual(self._targets(QUEUE_DEMAND, TransportMode.HAUL), ["W1N1-upgrade"])

    def test_storage_offered_above_unload_buffer(self):
        self.room.storage.store["energy"] = 800000
        group = ResourceRequestGroup(ClaimSet(), events=EventLogger())
        group.register_from_room(self.room, ThresholdConfig(), OverlordSettings())
        storage = [r for r in group.requests(QUEUE_SUPPLY) if r.target_id == "W1N1-storage"]
        self.assertEqual(len(storage), 1)
        self.assertEqual(storage[0].amount, 50000)
        self.assertFalse(storage[0].exclusive)

    def test_labs_and_terminal(self):
        room = make_room(structures=[
            Structure("lab1", pos(30, 30), structure_type=StructureType.LAB, store={"H": 200},
                      store_capacity=3000, requested_resource="H"),
            Structure("term", pos(32, 30), structure_type=StructureType.TERMINAL,
                      store={"energy": 1000, "H": 5000}, store_capacity=300000),
        ])
        group = ResourceRequestGroup(ClaimSet(), events=EventLogger())
        group.register_from_room(room, ThresholdConfig(), OverlordSettings())
        demand = group.requests(QUEUE_DEMAND, mode=TransportMode.CARRY, resource_type="H")
        self.assertEqual([(r.target_id, r.amount) for r in demand], [("lab1", 800)])
        supply = group.requests(QUEUE_SUPPLY, mode=TransportMode.CARRY)
        self.assertEqual([(r.target_id, r.resource_type) for r in supply], [("term", "H")])
        self.assertEqual(supply[0].direction, RequestDirection.OUT)

    def test_count_matches_queues(self):
        self.assertEqual(self.count, len(self.group))


if __name__ == "__main__":
    unittest.main()
