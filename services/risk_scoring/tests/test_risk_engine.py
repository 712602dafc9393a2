"""
Unit tests for the risk scoring engine (services.risk_scoring.scoring).
"""

from datetime import datetime, timedelta

import pytest

from common.errors import ValidationError
from libs.geo import Coordinate
from services.risk_scoring.scoring import (
    CONGESTION_WEIGHTS,
    TIME_OF_DAY_WEIGHTS,
    WEATHER_SEVERITY,
    CongestionLevel,
    RiskLevel,
    SituationalFactors,
    TimeOfDay,
    TrafficObservation,
    WeatherCondition,
    WeatherObservation,
    assess_risk,
    base_risk_for_hour,
    calculate_confidence,
    predict_risk_window,
    risk_level_for,
    situational_contribution,
    summarize_predictions,
    time_of_day_for_hour,
    weather_contribution,
)

pytestmark = pytest.mark.unit

NYC = Coordinate(40.7589, -73.9851)


# ----------------------------
# Enums / weight tables
# ----------------------------
class TestLookupTables:
    @pytest.mark.parametrize(
        "table,enum_cls",
        [
            (WEATHER_SEVERITY, WeatherCondition),
            (CONGESTION_WEIGHTS, CongestionLevel),
            (TIME_OF_DAY_WEIGHTS, TimeOfDay),
        ],
    )
    def test_every_variant_has_a_weight(self, table, enum_cls):
        assert set(table) == set(enum_cls)

    def test_parse_is_case_insensitive(self):
        assert WeatherCondition.parse("Rain") is WeatherCondition.RAIN
        assert CongestionLevel.parse(" HEAVY ") is CongestionLevel.HEAVY

    def test_unrecognised_labels_map_to_unknown(self):
        assert WeatherCondition.parse("Drizzle") is WeatherCondition.UNKNOWN
        assert CongestionLevel.parse("gridlock") is CongestionLevel.UNKNOWN
        assert TimeOfDay.parse("dusk") is TimeOfDay.UNKNOWN

    def test_night_weight_exceeds_documented_twenty_point_cap(self):
        # Night scores 25 even though the rationale describes time of day as 0-20
        assert TIME_OF_DAY_WEIGHTS[TimeOfDay.NIGHT] == 25


# ----------------------------
# Contributions
# ----------------------------
class TestWeatherContribution:
    def test_capped_at_forty(self):
        c = weather_contribution(
            WeatherObservation(WeatherCondition.THUNDERSTORM, wind_speed=30, visibility=100)
        )
        assert c.raw == 65
        assert c.points == 40

    def test_wind_penalty_applies_above_fifteen(self):
        calm = weather_contribution(WeatherObservation(WeatherCondition.CLEAR, wind_speed=15))
        windy = weather_contribution(WeatherObservation(WeatherCondition.CLEAR, wind_speed=15.1))
        assert calm.points == 5
        assert windy.points == 15

    def test_visibility_penalty_applies_below_thousand(self):
        clear = weather_contribution(WeatherObservation(WeatherCondition.CLOUDS, visibility=1000))
        hazy = weather_contribution(WeatherObservation(WeatherCondition.CLOUDS, visibility=999))
        assert clear.points == 10
        assert hazy.points == 25

    @pytest.mark.parametrize("condition", list(WeatherCondition))
    def test_monotonic_in_wind_and_visibility(self, condition):
        base = weather_contribution(WeatherObservation(condition, wind_speed=5, visibility=5000))
        windy = weather_contribution(WeatherObservation(condition, wind_speed=20, visibility=5000))
        foggy = weather_contribution(WeatherObservation(condition, wind_speed=20, visibility=200))
        assert base.points <= windy.points <= foggy.points

    def test_absent_condition_contributes_only_penalties(self):
        c = weather_contribution(WeatherObservation(wind_speed=20))
        assert c.points == 10

    def test_open_meteo_wind_is_converted_to_metres_per_second(self):
        obs = WeatherObservation.from_open_meteo({"weathercode": 61, "windspeed": 72.0})
        assert obs.condition is WeatherCondition.RAIN
        assert obs.wind_speed == pytest.approx(20.0)
        assert obs.visibility is None

    @pytest.mark.parametrize("payload", [None, [], "sunny"])
    def test_open_meteo_rejects_non_object_payload(self, payload):
        with pytest.raises(ValueError, match="not an object"):
            WeatherObservation.from_open_meteo(payload)

    def test_from_openweather(self):
        obs = WeatherObservation.from_openweather(
            {"weather": [{"main": "Snow"}], "wind": {"speed": 3.2}, "visibility": 800}
        )
        assert obs == WeatherObservation(WeatherCondition.SNOW, 3.2, 800)


class TestSituationalContribution:
    def test_school_zone_alone_clamps_to_zero(self):
        c = situational_contribution(SituationalFactors(school_zone=True))
        assert c.raw == -3
        assert c.points == 0

    def test_all_flags_sum_with_school_zone_discount(self):
        c = situational_contribution(
            SituationalFactors(
                construction=True, school_zone=True, hospital_nearby=True, shopping_area=True
            )
        )
        assert c.raw == 8
        assert c.points == 8

    def test_from_dict_accepts_camel_case(self):
        f = SituationalFactors.from_dict({"schoolZone": True, "shoppingArea": 1})
        assert f == SituationalFactors(school_zone=True, shopping_area=True)


# ----------------------------
# Level / confidence
# ----------------------------
@pytest.mark.parametrize(
    "score,level",
    [(100, RiskLevel.HIGH), (70, RiskLevel.HIGH), (69, RiskLevel.MEDIUM),
     (40, RiskLevel.MEDIUM), (39, RiskLevel.LOW), (0, RiskLevel.LOW)],
)
def test_risk_level_thresholds(score, level):
    assert risk_level_for(score) is level


class TestConfidence:
    def test_no_inputs(self):
        assert calculate_confidence(None, None, None) == 50

    def test_all_inputs_capped_at_95(self):
        assert (
            calculate_confidence(WeatherObservation(), TrafficObservation(), SituationalFactors())
            == 95
        )

    def test_weather_only(self):
        assert calculate_confidence(WeatherObservation(), None, None) == 70


# ----------------------------
# assess_risk
# ----------------------------
class TestAssessRisk:
    def test_full_scenario(self):
        now = datetime(2025, 1, 15, 18, 0)
        result = assess_risk(
            NYC,
            weather=WeatherObservation.from_dict(
                {"condition": "rain", "windSpeed": 20, "visibility": 500}
            ),
            traffic=TrafficObservation.from_dict({"congestionLevel": "heavy"}),
            time_of_day=TimeOfDay.EVENING,
            factors=SituationalFactors(construction=True),
            now=now,
        )
        assert result.risk_factors["weather"].points == 40
        assert result.risk_factors["traffic"].points == 25
        assert result.risk_factors["timeOfDay"].points == 18
        assert result.risk_factors["additional"].points == 5
        assert result.risk_score == 88
        assert result.risk_level is RiskLevel.HIGH
        assert result.confidence == 95
        assert result.recommendations == [
            "Avoid this area if possible",
            "Use alternative routes",
            "Reduce speed due to weather conditions",
            "Increase following distance",
            "Expect delays and heavy traffic",
            "Consider using public transportation",
            "Exercise extra caution during peak hours",
        ]

        body = result.to_dict()
        assert body["coordinates"] == {"lat": 40.7589, "lng": -73.9851}
        assert body["riskFactors"]["weather"] == {
            "score": 50,
            "contribution": 40,
            "condition": "rain",
            "impact": "high",
        }
        assert body["timestamp"] == now.isoformat()

    def test_no_optional_inputs(self):
        result = assess_risk(NYC)
        assert result.risk_score == 0
        assert result.risk_level is RiskLevel.LOW
        assert result.confidence == 50
        assert result.risk_factors == {}
        assert result.recommendations == ["Normal driving conditions expected"]

    def test_factors_only_stay_within_ten(self):
        result = assess_risk(
            NYC,
            factors=SituationalFactors(construction=True, shopping_area=True, hospital_nearby=True),
        )
        assert 0 <= result.risk_score <= 10
        assert result.risk_level is RiskLevel.LOW
        assert result.confidence == 60

    def test_score_never_exceeds_hundred(self):
        result = assess_risk(
            NYC,
            weather=WeatherObservation(WeatherCondition.THUNDERSTORM, 40, 10),
            traffic=TrafficObservation(CongestionLevel.SEVERE),
            time_of_day=TimeOfDay.NIGHT,
            factors=SituationalFactors(construction=True, shopping_area=True),
        )
        assert result.risk_score == 100
        assert result.risk_level is RiskLevel.HIGH

    def test_missing_coordinates(self):
        with pytest.raises(ValidationError, match="Coordinates are required"):
            assess_risk(None)

    def test_out_of_range_coordinates(self):
        with pytest.raises(ValidationError, match="Latitude must be between -90 and 90"):
            assess_risk(Coordinate(95, 0))


# ----------------------------
# Prediction
# ----------------------------
class TestPrediction:
    @pytest.mark.parametrize(
        "target,expected",
        [
            (datetime(2025, 1, 15, 7, 0), 70),
            (datetime(2025, 1, 15, 9, 59), 70),
            (datetime(2025, 1, 15, 17, 0), 80),
            (datetime(2025, 1, 15, 19, 59), 80),
            (datetime(2025, 1, 15, 22, 0), 45),
            (datetime(2025, 1, 15, 5, 59), 45),
            (datetime(2025, 1, 15, 12, 0), 30),
        ],
    )
    def test_zero_perturbation_gives_base_table(self, neutral_random, target, expected):
        [prediction] = predict_risk_window(
            NYC, 1, random_source=neutral_random, start=target - timedelta(hours=1)
        )
        assert prediction.time == target
        assert prediction.risk_score == expected
        assert base_risk_for_hour(target.hour) == expected

    def test_hour_count_and_spacing(self, neutral_random, fixed_now):
        predictions = predict_risk_window(NYC, 6, random_source=neutral_random, start=fixed_now)
        assert [p.time for p in predictions] == [
            fixed_now + timedelta(hours=i) for i in range(1, 7)
        ]

    def test_perturbation_range(self):
        low = predict_risk_window(NYC, 1, random_source=lambda: 0.0, start=datetime(2025, 1, 15, 11))
        high = predict_risk_window(
            NYC, 1, random_source=lambda: 0.999999, start=datetime(2025, 1, 15, 11)
        )
        assert low[0].risk_score == 20
        assert high[0].risk_score == 40
        assert high[0].risk_level is RiskLevel.MEDIUM

    def test_level_follows_rounded_score(self):
        # 30 + (0.9995 - 0.5) * 20 = 39.99 -> rounds to 40
        [p] = predict_risk_window(
            NYC, 1, random_source=lambda: 0.9995, start=datetime(2025, 1, 15, 11)
        )
        assert p.risk_score == 40
        assert p.risk_level is RiskLevel.MEDIUM

    def test_factors(self, neutral_random):
        [rush, night] = [
            predict_risk_window(NYC, 1, random_source=neutral_random, start=datetime(2025, 1, 15, h))[0]
            for h in (7, 22)
        ]
        assert rush.factors == {"traffic": "heavy", "weather": "clear", "visibility": "good"}
        assert night.factors == {"traffic": "moderate", "weather": "clear", "visibility": "reduced"}

    def test_summary(self, sequence_random):
        predictions = predict_risk_window(
            NYC, 3, random_source=sequence_random(0.5, 1.0, 0.0), start=datetime(2025, 1, 15, 11)
        )
        assert [p.risk_score for p in predictions] == [30, 40, 20]
        summary = summarize_predictions(predictions)
        assert summary["averageRisk"] == 30
        assert summary["peakRiskTime"]["riskScore"] == 40
        assert summary["safestTime"]["riskScore"] == 20

    def test_summary_ties_keep_first(self, neutral_random):
        start = datetime(2025, 1, 15, 11)
        predictions = predict_risk_window(NYC, 3, random_source=neutral_random, start=start)
        summary = summarize_predictions(predictions)
        assert summary["peakRiskTime"]["time"] == predictions[0].time.isoformat()
        assert summary["safestTime"]["time"] == predictions[0].time.isoformat()

    def test_empty_summary(self):
        assert summarize_predictions([]) == {
            "averageRisk": 0,
            "peakRiskTime": None,
            "safestTime": None,
        }


@pytest.mark.parametrize(
    "hour,bucket",
    [(5, TimeOfDay.MORNING), (11, TimeOfDay.MORNING), (12, TimeOfDay.AFTERNOON),
     (16, TimeOfDay.AFTERNOON), (17, TimeOfDay.EVENING), (20, TimeOfDay.EVENING),
     (21, TimeOfDay.NIGHT), (4, TimeOfDay.NIGHT)],
)
def test_time_of_day_for_hour(hour, bucket):
    assert time_of_day_for_hour(hour) is bucket
