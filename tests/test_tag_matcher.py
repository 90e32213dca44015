"""Tests for the pure tag matcher."""

import pytest

from tag_governance.analyzers.tag_matcher import match_tags

VARIANTS = ["Dept", "Department", "DeptId"]


def test_variant_alongside_canonical():
    result = match_tags({"Dept": "Finance", "DeptCode": "FIN001"}, VARIANTS, "DeptCode")

    assert result.has_canonical is True
    assert result.matches == (("Dept", "Finance"),)


def test_canonical_only_yields_no_matches():
    result = match_tags({"DeptCode": "ENG"}, VARIANTS, "DeptCode")

    assert result.has_canonical is True
    assert result.matches == ()


def test_two_variants_follow_dictionary_order():
    # DeptId listed first in the map, but Dept comes first in the dictionary
    result = match_tags({"DeptId": "HR02", "Dept": "HR"}, VARIANTS, "DeptCode")

    assert result.has_canonical is False
    assert result.matches == (("Dept", "HR"), ("DeptId", "HR02"))


def test_original_casing_is_preserved():
    result = match_tags({"dEpArTmEnT": "Ops", "deptcode": "OPS1"}, VARIANTS, "DeptCode")

    assert result.matches == (("dEpArTmEnT", "Ops"),)
    assert result.has_canonical is True


@pytest.mark.parametrize("tags", [None, {}])
def test_missing_or_empty_tag_map(tags):
    result = match_tags(tags, VARIANTS, "DeptCode")

    assert result.has_canonical is False
    assert result.matches == ()


@pytest.mark.parametrize(
    "tags, expected",
    [
        ({"env": "prod"}, False),
        ({"DEPTCODE": "X"}, True),
        ({"Dept": "X"}, False),
        ({"Dept": "X", "deptCode": "Y"}, True),
    ],
)
def test_has_canonical_is_independent_of_matches(tags, expected):
    assert match_tags(tags, VARIANTS, "DeptCode").has_canonical is expected


@pytest.mark.parametrize(
    "tags, count",
    [
        ({"owner": "a"}, 0),
        ({"DEPT": "a"}, 1),
        ({"dept": "a", "DEPARTMENT": "b"}, 2),
        ({"dept": "a", "Department": "b", "deptid": "c", "env": "d"}, 3),
    ],
)
def test_one_match_per_distinct_variant_key(tags, count):
    result = match_tags(tags, VARIANTS, "DeptCode")

    assert len(result.matches) == count
    for key, value in result.matches:
        assert key in tags
        assert tags[key] == value


def test_keys_folding_to_the_same_variant_are_all_reported():
    result = match_tags({"Dept": "A", "DEPT": "B"}, VARIANTS, "DeptCode")

    assert result.matches == (("Dept", "A"), ("DEPT", "B"))


def test_canonical_in_variant_list_is_never_matched():
    result = match_tags({"DeptCode": "X"}, ["deptcode", "Dept"], "DeptCode")

    assert result.matches == ()
