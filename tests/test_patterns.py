"""
Tests for the shared pattern model (periodic components, light curve).
"""

import math
import random
from datetime import datetime, timedelta

import pytest

from greenhouse.services.patterns import (
    AIR_HUMIDITY_RANGE,
    CO2_RANGE,
    NIGHT_FLOOR,
    NIGHT_LIGHT_RANGE,
    SOIL_HUMIDITY_RANGE,
    TEMP_RANGE,
    compute_pattern_point,
    day_factor,
    day_night_cycle,
    light_level,
    pattern_transition,
    weather_pattern_cycle,
)


class TestComponents:
    """Tests for the individual periodic components."""

    def test_day_night_cycle_peaks_at_two_pm(self):
        """Test that the diurnal cosine peaks at 14:00 and bottoms out at 02:00."""
        assert day_night_cycle(14) == pytest.approx(1.0)
        assert day_night_cycle(2) == pytest.approx(-1.0)
        assert day_night_cycle(8) == pytest.approx(0.0, abs=1e-12)

    def test_weather_cycle_is_three_day_wave(self):
        """Test that the weather pattern is flat within a day and zero every third day."""
        assert weather_pattern_cycle(0) == 0
        assert weather_pattern_cycle(5) == weather_pattern_cycle(23)
        assert weather_pattern_cycle(24) == pytest.approx(math.sin(math.pi / 3) * 0.7)
        assert weather_pattern_cycle(72) == pytest.approx(0.0, abs=1e-12)

    def test_pattern_transition_scales_with_trend(self):
        """Test that the transition term is proportional to trend_impact."""
        assert pattern_transition(36, 3.0) == pytest.approx(3.0)
        assert pattern_transition(36, 1.5) == pytest.approx(1.5)
        assert pattern_transition(0, 3.0) == 0


class TestComputePatternPoint:
    """Tests for compute_pattern_point."""

    def test_bounds_hold_for_random_inputs(self):
        """Test that every channel stays inside its greenhouse range."""
        rng = random.Random(7)
        start = datetime(2026, 1, 1, tzinfo=None)

        for _ in range(10_000):
            timestamp = start + timedelta(minutes=rng.randrange(0, 2 * 365 * 24 * 60))
            values = compute_pattern_point(
                rng.uniform(0, 50),
                rng.uniform(0, 100),
                rng.uniform(0, 100),
                timestamp,
                hour_offset=rng.uniform(0, 800),
                random_factor=rng.uniform(0, 5),
                trend_impact=rng.uniform(0, 10),
                base_co2_level=rng.uniform(0, 3000),
                rng=rng,
            )

            assert TEMP_RANGE[0] <= values.temperature <= TEMP_RANGE[1]
            assert AIR_HUMIDITY_RANGE[0] <= values.air_humidity <= AIR_HUMIDITY_RANGE[1]
            assert SOIL_HUMIDITY_RANGE[0] <= values.soil_humidity <= SOIL_HUMIDITY_RANGE[1]
            assert CO2_RANGE[0] <= values.co2_level <= CO2_RANGE[1]
            assert values.light_lux >= 0

    @pytest.mark.parametrize("hour", [0, 3, 8, 14, 20, 23])
    def test_starts_at_seed_when_offset_is_zero(self, hour, zone):
        """Test that the curve starts at the seed regardless of the time of day."""
        timestamp = datetime(2026, 3, 10, hour, 15, tzinfo=zone)

        values = compute_pattern_point(
            23.5, 55.0, 48.0, timestamp, hour_offset=0,
            random_factor=0.0, trend_impact=0.0, rng=random.Random(1),
        )

        assert values.temperature == pytest.approx(23.5, abs=0.05)
        assert values.air_humidity == pytest.approx(55.0, abs=0.05)
        assert values.soil_humidity == pytest.approx(48.0, abs=0.05)

    def test_small_jitter_stays_near_seed(self, fixed_now):
        """Test that the 'now' settings (0.1 / 0.1) keep the point within jitter of the seed."""
        values = compute_pattern_point(
            23.5, 55.0, 48.0, fixed_now, hour_offset=0,
            random_factor=0.1, trend_impact=0.1, rng=random.Random(3),
        )

        assert abs(values.temperature - 23.5) <= 0.02 + 0.05
        assert abs(values.air_humidity - 55.0) <= 0.04 + 0.05

    def test_temperature_and_humidity_move_in_anti_phase(self, zone):
        """Test that afternoon raises temperature and lowers humidity relative to the night."""
        origin = datetime(2026, 5, 1, 2, 0, tzinfo=zone)
        afternoon = origin + timedelta(hours=12)

        values = compute_pattern_point(
            22.0, 60.0, 50.0, afternoon, hour_offset=12,
            random_factor=0.0, trend_impact=0.0,
        )

        # 02:00 -> 14:00 is the full diurnal swing
        assert values.temperature == pytest.approx(22.0 + 2 * 2.5, abs=0.05)
        assert values.air_humidity == pytest.approx(60.0 - 2 * 4.0, abs=0.05)
        assert values.soil_humidity < 50.0

    def test_peak_seeded_batch_only_cools(self, zone):
        """Test that a batch seeded at 14:00 never rises above the seed from the diurnal term."""
        origin = datetime(2026, 3, 10, 14, 0, tzinfo=zone)

        temps = [
            compute_pattern_point(
                25.0, 55.0, 48.0, origin + timedelta(hours=h), hour_offset=h,
                random_factor=0.0, trend_impact=0.0,
            ).temperature
            for h in range(24)
        ]

        assert all(t <= 25.0 + 0.05 for t in temps)
        assert min(temps) == pytest.approx(25.0 - 2 * 2.5, abs=0.05)
        assert temps.index(min(temps)) == 12

    def test_values_are_rounded_to_one_decimal(self, fixed_now):
        """Test that outputs carry at most one decimal."""
        values = compute_pattern_point(
            24.123, 57.891, 44.444, fixed_now + timedelta(hours=30), hour_offset=30,
            rng=random.Random(11),
        )

        for value in (values.temperature, values.air_humidity, values.soil_humidity, values.co2_level):
            assert round(value, 1) == value


class TestLightCurve:
    """Tests for day_factor and light_level."""

    def test_day_factor_ramps(self):
        """Test the sunrise / day / sunset / night shape of the day factor."""
        assert day_factor(3) == NIGHT_FLOOR
        assert day_factor(6) == 0.0
        assert day_factor(7) == pytest.approx(0.5)
        assert day_factor(12) == 1.0
        assert day_factor(17) == pytest.approx(0.5)
        assert day_factor(18) == NIGHT_FLOOR
        assert day_factor(23.5) == NIGHT_FLOOR

    def test_light_follows_day(self):
        """Test that light is low at night, rises through sunrise and falls through sunset."""
        rng = random.Random(5)
        light = {hour: light_level(hour, rng) for hour in (5, 7, 9, 15, 17, 19)}

        assert NIGHT_LIGHT_RANGE[0] <= light[5] <= NIGHT_LIGHT_RANGE[1]
        assert NIGHT_LIGHT_RANGE[0] <= light[19] <= NIGHT_LIGHT_RANGE[1]
        assert light[5] < light[7] < light[9]
        assert light[15] > light[17] > light[19]
        assert light[9] > 9000
        assert light[15] > 9000

    def test_daytime_light_is_deterministic(self):
        """Test that daylight does not depend on the random source."""
        assert light_level(12, random.Random(1)) == light_level(12, random.Random(2))
