"""
Tests for the six match factors
"""

import pytest

from tripmatch.algorithms.similarity_scorer import (
    _calculate_budget_match,
    _calculate_duration_match,
    _calculate_group_size_match,
    score_factors,
)

from .conftest import make_package, make_request, praia_package


def test_perfect_package_factors(noronha_request, noronha_package):
    factors = score_factors(noronha_request, noronha_package)

    assert factors.destination_match == 100
    assert factors.budget_match == 100
    assert factors.duration_match == 100
    assert factors.activity_match == 100
    assert factors.group_size_match == 100
    # No start date given
    assert factors.date_availability == 60


def test_start_date_raises_date_availability(noronha_package):
    request = make_request(start_date="2026-12-10")
    assert score_factors(request, noronha_package).date_availability == 80


def test_unrelated_package_factors(noronha_request):
    factors = score_factors(noronha_request, praia_package())

    assert factors.destination_match == 0
    assert factors.budget_match == 0
    assert factors.duration_match == 0
    assert factors.activity_match == 0
    assert factors.group_size_match == 30


@pytest.mark.parametrize("price, expected", [
    (2000, 100),
    (2100, 100),
    (2150, 90),
    (2300, 75),
    (2500, 60),
    (2900, 40),
    (4000, 0),
])
def test_budget_match_tiers(price, expected):
    assert _calculate_budget_match(price, 2000) == expected


def test_budget_match_linear_tail():
    assert _calculate_budget_match(3100, 2000) == pytest.approx(2.5)


@pytest.mark.parametrize("package_days, expected", [(4, 100), (5, 85), (2, 70), (7, 55), (8, 0), (10, 0)])
def test_duration_match(package_days, expected):
    assert _calculate_duration_match(package_days, 4) == expected


@pytest.mark.parametrize("max_guests, group_size, expected", [(4, 2, 100), (2, 2, 100), (1, 2, 30), (1, 5, 0)])
def test_group_size_match(max_guests, group_size, expected):
    assert _calculate_group_size_match(max_guests, group_size) == expected


def test_activity_match_neutral_without_activities(noronha_package):
    request = make_request(activities=[])
    assert score_factors(request, noronha_package).activity_match == 50


def test_activity_match_searches_highlights():
    request = make_request(activities=["Mergulho", "Trilha"])
    package = make_package(description="", highlights=["trilha do atalaia"])
    assert score_factors(request, package).activity_match == 50


def test_destination_keyword_overlap():
    request = make_request(destination="praia noronha")
    package = make_package(category="noronha beach", name="Pacote X")
    assert score_factors(request, package).destination_match == pytest.approx(40)


def test_destination_matches_on_reverse_containment():
    request = make_request(destination="Praia do Sancho")
    package = make_package(category="Sancho", name="Pacote X")
    assert score_factors(request, package).destination_match == 100


def test_factors_stay_within_bounds():
    request = make_request(budget=100, duration=30, group_size=50, activities=["a", "b", "c"])
    for package in [make_package(), praia_package(), make_package(base_price=1, duration=1, max_guests=100)]:
        factors = score_factors(request, package)
        for value in factors.model_dump().values():
            assert 0 <= value <= 100
