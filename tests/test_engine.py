"""Tests for the simulation engine and its body registry."""

import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from solar_sim.config import PROBE_MASS, PROBE_SIZE, ConfigurationError
from solar_sim.physics.engine import SolarSystemEngine, run_simulation_loop
from solar_sim.physics.kepler import OrbitalElements, position_at
from solar_sim.state.clock import InvalidTickError, SimulationClock
from solar_sim.state.registry import UnknownBodyError

TWO_PI = 2.0 * math.pi


@pytest.fixture
def star_and_probe(unit_engine, unit_circle):
    """One unit-mass orbit body on the unit circle and a probe at rest at x = 2."""
    unit_engine.register_orbit_body("Star", 1.0, 1.0, 0xFFFF00, unit_circle)
    unit_engine.register_free_body("Probe", 1.0, 0.1, 0x00FF00, (2.0, 0.0, 0.0), (0.0, 0.0, 0.0))
    return unit_engine


class TestCanonicalTick:

    def test_single_tick_displacement(self, star_and_probe):
        dt = 0.01
        star_and_probe.advance(dt)

        source = np.array([math.cos(TWO_PI * dt), 0.0, math.sin(TWO_PI * dt)])
        separation = source - np.array([2.0, 0.0, 0.0])
        distance = np.linalg.norm(separation)
        # G = 1, M = 1, m = 1, well below the force limit
        acceleration = separation / distance**3

        displacement = star_and_probe.position_of("Probe") - np.array([2.0, 0.0, 0.0])
        assert_allclose(star_and_probe.position_of("Star"), source, atol=1e-15)
        assert_allclose(displacement, acceleration * dt**2, rtol=1e-12)
        assert_allclose(star_and_probe.velocity_of("Probe"), acceleration * dt, rtol=1e-12)
        assert displacement[0] < 0.0

    def test_orbit_body_velocity_is_finite_difference(self, star_and_probe):
        star_and_probe.advance(0.01)
        expected = (
            np.array([math.cos(TWO_PI * 0.01), 0.0, math.sin(TWO_PI * 0.01)])
            - np.array([1.0, 0.0, 0.0])
        ) / 0.01
        assert_allclose(star_and_probe.velocity_of("Star"), expected, rtol=1e-12)

    def test_returns_simulated_step(self, star_and_probe):
        star_and_probe.set_time_scale(10.0)
        dt_sim, t_sim = star_and_probe.advance(0.01)
        assert_allclose(dt_sim, 0.1)
        assert_allclose(t_sim, 0.1)

    def test_identical_engines_agree(self, unit_circle):
        results = []
        for _ in range(2):
            engine = SolarSystemEngine(g=1.0, force_limit=1.0e3, rads_per_second=TWO_PI)
            engine.register_orbit_body("Star", 1.0, 1.0, 0, unit_circle)
            engine.register_free_body("Probe", 1.0, 0.1, 0, (2.0, 0.0, 0.0), (0.0, 0.5, 0.0))
            for dt in (0.01, 0.02, 0.005):
                engine.advance(dt)
            results.append(engine.position_of("Probe"))
        assert np.array_equal(results[0], results[1])


class TestTimeControl:

    def test_paused_engine_does_not_move(self, star_and_probe):
        star_and_probe.advance(0.01)
        before = star_and_probe.snapshot()
        star_and_probe.pause()
        assert star_and_probe.advance(0.5) == (0.0, before['sim_time'])
        after = star_and_probe.snapshot()
        assert np.array_equal(before['positions'], after['positions'])
        assert np.array_equal(before['velocities'], after['velocities'])
        star_and_probe.resume()
        assert star_and_probe.advance(0.01)[0] == 0.01

    def test_negative_tick_rejected(self, star_and_probe):
        with pytest.raises(InvalidTickError):
            star_and_probe.advance(-0.01)
        assert_allclose(star_and_probe.position_of("Probe"), [2.0, 0.0, 0.0])
        assert star_and_probe.sim_time == 0.0

    def test_tick_by_wall_time(self, star_and_probe):
        assert star_and_probe.tick(0.25) == (0.25, 0.25)
        assert star_and_probe.tick(0.5) == (0.25, 0.5)

    def test_preset(self, unit_engine):
        unit_engine.set_time_scale_preset("x1000")
        assert unit_engine.time_scale == 1000.0

    def test_non_positive_time_scale_rejected(self, unit_engine):
        with pytest.raises(ConfigurationError):
            unit_engine.set_time_scale(0.0)

    def test_shared_clock(self, unit_circle):
        clock = SimulationClock(start_time=0.25)
        engine = SolarSystemEngine(rads_per_second=TWO_PI, clock=clock)
        body = engine.register_orbit_body("Star", 1.0, 1.0, 0, unit_circle)
        assert engine.clock is clock
        assert_allclose(body.position, position_at(unit_circle, 0.25, TWO_PI))


class TestRegistration:

    @pytest.mark.parametrize("mass", [0.0, -1.0, float('nan')])
    def test_non_positive_mass_rejected(self, unit_engine, unit_circle, mass):
        with pytest.raises(ConfigurationError):
            unit_engine.register_orbit_body("Star", mass, 1.0, 0, unit_circle)
        with pytest.raises(ConfigurationError):
            unit_engine.register_free_body("Probe", mass, 1.0, 0, (0, 0, 0), (0, 0, 0))
        assert len(unit_engine.registry) == 0

    def test_ids_unique_across_kinds(self, star_and_probe, unit_circle):
        with pytest.raises(ConfigurationError):
            star_and_probe.register_orbit_body("Probe", 1.0, 1.0, 0, unit_circle)
        with pytest.raises(ConfigurationError):
            star_and_probe.register_free_body("Star", 1.0, 1.0, 0, (0, 0, 0), (0, 0, 0))

    @pytest.mark.parametrize("vector", [(1.0, 2.0), (1.0, float('inf'), 0.0), "abc"])
    def test_malformed_vectors_rejected(self, unit_engine, vector):
        with pytest.raises(ConfigurationError):
            unit_engine.register_free_body("Probe", 1.0, 1.0, 0, vector, (0, 0, 0))

    def test_elements_must_be_orbital_elements(self, unit_engine):
        with pytest.raises(ConfigurationError):
            unit_engine.register_orbit_body("Star", 1.0, 1.0, 0, {"period": 1.0})

    def test_orbit_body_positioned_on_registration(self, unit_engine, unit_circle):
        unit_engine.register_orbit_body("Star", 1.0, 1.0, 0, unit_circle)
        assert_allclose(unit_engine.position_of("Star"), [1.0, 0.0, 0.0])
        assert_allclose(unit_engine.velocity_of("Star"), [0.0, 0.0, 0.0])

    def test_fixed_body_stays_at_offset(self, unit_engine):
        unit_engine.register_orbit_body("Sun", 1.0, 5.0, 0, None, offset=(1.0, 2.0, 3.0))
        unit_engine.advance(0.3)
        assert_allclose(unit_engine.position_of("Sun"), [1.0, 2.0, 3.0])
        assert_allclose(unit_engine.velocity_of("Sun"), [0.0, 0.0, 0.0])

    def test_offset_shifts_orbit(self, unit_engine, unit_circle):
        unit_engine.register_orbit_body("Moon", 1.0, 1.0, 0, unit_circle, offset=(10.0, 0.0, 0.0))
        unit_engine.advance(0.25)
        assert_allclose(unit_engine.position_of("Moon"), [10.0, 0.0, 1.0], atol=1e-12)

    def test_launch_probe_defaults(self, unit_engine):
        probe = unit_engine.launch_probe("Probe3", (1.0, 0.0, 0.0), (0.0, 1.0, 0.0))
        assert probe.mass == PROBE_MASS
        assert unit_engine.radius_of("Probe3") == PROBE_SIZE

    def test_physical_radius_defaults_to_radius(self, unit_engine, unit_circle):
        body = unit_engine.register_orbit_body("Star", 1.0, 7.0, 0, unit_circle)
        assert body.physical_radius == 7.0

    @pytest.mark.parametrize("overrides", [dict(precision=16), dict(force_limit=0.0), dict(rads_per_second=-1.0)])
    def test_invalid_engine_settings_rejected(self, overrides):
        with pytest.raises(ConfigurationError):
            SolarSystemEngine(**overrides)


class TestAccessors:

    def test_radius_of(self, star_and_probe):
        assert star_and_probe.radius_of("Star") == 1.0
        assert star_and_probe.radius_of("Probe") == 0.1

    def test_unknown_body(self, star_and_probe):
        with pytest.raises(UnknownBodyError):
            star_and_probe.position_of("Comet")
        with pytest.raises(KeyError):
            star_and_probe.velocity_of("Comet")

    def test_accessors_return_copies(self, star_and_probe):
        position = star_and_probe.position_of("Probe")
        position[0] = 99.0
        assert_allclose(star_and_probe.position_of("Probe"), [2.0, 0.0, 0.0])

    def test_remove_body(self, star_and_probe):
        star_and_probe.remove_body("Probe")
        assert "Probe" not in star_and_probe.registry
        assert star_and_probe.snapshot()['ids'] == ["Star"]
        star_and_probe.advance(0.01)
        with pytest.raises(UnknownBodyError):
            star_and_probe.remove_body("Probe")

    def test_removed_source_stops_pulling(self, star_and_probe):
        star_and_probe.remove_body("Star")
        star_and_probe.advance(0.5)
        assert_allclose(star_and_probe.position_of("Probe"), [2.0, 0.0, 0.0])

    def test_snapshot(self, star_and_probe):
        snapshot = star_and_probe.snapshot()
        assert snapshot['ids'] == ["Star", "Probe"]
        assert snapshot['kinds'] == ["orbit", "free"]
        assert snapshot['positions'].shape == (2, 3)
        assert_allclose(snapshot['radii'], [1.0, 0.1])
        assert snapshot['sim_time'] == 0.0
        assert snapshot['paused'] is False

    def test_orbit_path(self, unit_engine, unit_circle):
        unit_engine.register_orbit_body("Moon", 1.0, 1.0, 0, unit_circle, offset=(0.0, 5.0, 0.0))
        path = unit_engine.orbit_path("Moon", num_points=8)
        assert path.shape == (9, 3)
        assert_allclose(np.linalg.norm(path - [0.0, 5.0, 0.0], axis=1), 1.0)

    def test_orbit_path_needs_orbit(self, star_and_probe):
        with pytest.raises(ConfigurationError):
            star_and_probe.orbit_path("Probe")


class TestFreeBodies:

    def test_free_bodies_do_not_attract_each_other(self, unit_engine):
        unit_engine.register_free_body("A", 1.0e6, 1.0, 0, (0.0, 0.0, 0.0), (1.0, 0.0, 0.0))
        unit_engine.register_free_body("B", 1.0e6, 1.0, 0, (1.0, 0.0, 0.0), (0.0, 0.0, 0.0))
        unit_engine.advance(0.5)
        assert_allclose(unit_engine.position_of("A"), [0.5, 0.0, 0.0])
        assert_allclose(unit_engine.position_of("B"), [1.0, 0.0, 0.0])
        assert_allclose(unit_engine.velocity_of("A"), [1.0, 0.0, 0.0])

    def test_probe_near_source_feels_limited_force(self, unit_engine):
        unit_engine.register_orbit_body("Sun", 1.0e9, 1.0, 0, None)
        unit_engine.register_free_body("Probe", 2.0, 1.0, 0, (1.0e-6, 0.0, 0.0), (0.0, 0.0, 0.0))
        unit_engine.advance(0.001)
        velocity = unit_engine.velocity_of("Probe")
        assert np.all(np.isfinite(velocity))
        # force_limit / mass * dt
        assert_allclose(velocity, [-1.0e3 / 2.0 * 0.001, 0.0, 0.0], rtol=1e-12)

    def test_energy(self, star_and_probe):
        energy = star_and_probe.free_body_energy()
        assert energy['kinetic'] == 0.0
        assert_allclose(energy['potential'], -1.0)
        assert_allclose(energy['total'], -1.0)

    def test_energy_without_free_bodies(self, unit_engine):
        assert unit_engine.free_body_energy() == {'kinetic': 0.0, 'potential': 0.0, 'total': 0.0}


def run_star_and_probe(unit_circle, precision=64, steps=(0.01,)):
    engine = SolarSystemEngine(
        g=1.0, force_limit=1.0e3, rads_per_second=TWO_PI, precision=precision
    )
    engine.register_orbit_body("Star", 1.0, 1.0, 0, unit_circle)
    engine.register_free_body("Probe", 1.0, 0.1, 0, (2.0, 0.0, 0.0), (0.0, 0.0, 0.0))
    for dt in steps:
        engine.advance(dt)
    return engine


class TestPrecision:

    def test_32_bit_engine_leaves_64_bit_engines_alone(self, unit_circle):
        before = run_star_and_probe(unit_circle).position_of("Probe")

        engine = SolarSystemEngine(g=1.0, force_limit=1.0e3, rads_per_second=TWO_PI)
        engine.register_orbit_body("Star", 1.0, 1.0, 0, unit_circle)
        engine.register_free_body("Probe", 1.0, 0.1, 0, (2.0, 0.0, 0.0), (0.0, 0.0, 0.0))
        run_star_and_probe(unit_circle, precision=32)
        engine.advance(0.01)

        assert np.array_equal(engine.position_of("Probe"), before)

    def test_32_bit_kernel_tracks_64_bit_result(self, unit_circle):
        steps = (0.01, 0.02, 0.005)
        wide = run_star_and_probe(unit_circle, steps=steps).position_of("Probe")
        narrow = run_star_and_probe(unit_circle, precision=32, steps=steps).position_of("Probe")
        assert_allclose(narrow, wide, rtol=1e-5, atol=1e-9)

    def test_32_bit_kernel_keeps_state_in_float64(self, unit_circle):
        engine = SolarSystemEngine(
            g=1.0, force_limit=1.0e3, rads_per_second=TWO_PI, precision=32
        )
        engine.register_orbit_body("Star", 1.0, 1.0, 0, unit_circle)
        # Far beyond float32 resolution of a millimetre-sized step
        engine.register_free_body("Probe", 1.0, 0.1, 0, (1.0e8, 0.0, 0.0), (1.0e-3, 0.0, 0.0))
        engine.advance(1.0)
        position = engine.position_of("Probe")
        assert position.dtype == np.float64
        assert_allclose(position[0] - 1.0e8, 1.0e-3, rtol=1e-4)


class FakeTime:
    """Manual clock: time only moves when the loop sleeps."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


class TestSimulationLoop:

    def test_runs_for_duration(self, star_and_probe, capsys):
        fake = FakeTime()
        seen = []
        ticks = run_simulation_loop(
            star_and_probe,
            duration=1.0,
            tick_rate=4.0,
            on_tick=lambda engine: seen.append(engine.sim_time),
            timer=fake,
            sleep=fake.sleep,
        )
        assert ticks == 4
        assert seen == [0.0, 0.25, 0.5, 0.75]
        assert "Simulation loop stopped." in capsys.readouterr().out

    def test_invalid_tick_rate(self, star_and_probe):
        with pytest.raises(ConfigurationError):
            run_simulation_loop(star_and_probe, duration=1.0, tick_rate=0.0)
