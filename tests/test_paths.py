# tests/test_paths.py
from uuid import UUID

import pytest

from xoclient.errors import DecodeError
from xoclient.paths import (PathBuilder, encode_params, extract_id_from_path, extract_task_id, ids_from_paths,
                            is_task_url)

POOL = UUID("6b1c1a52-2f2a-4a0e-9f52-6b8d6d1c2a11")


def test_path_builder():
    path = PathBuilder().resource("pools").id(POOL).actions_group().action("create_vm")
    assert path.build() == f"pools/{POOL}/actions/create_vm"
    assert path.absolute() == f"/rest/v0/pools/{POOL}/actions/create_vm"
    assert str(path) == path.build()


def test_path_builder_escapes_segments():
    assert PathBuilder().resource("vms").id_string("a b/c").build() == "vms/a%20b%2Fc"


def test_encode_params_keeps_order_and_skips_none():
    query = encode_params({"fields": ["name_label", "power_state"], "limit": 10, "filter": None})
    assert query == "fields=name_label,power_state&limit=10"


def test_encode_params_filter_and_star():
    assert encode_params({"fields": "*", "filter": "$poolId:abc"}) == "fields=*&filter=$poolId:abc"


def test_encode_params_bool_and_empty():
    assert encode_params({"force": True}) == "force=true"
    assert encode_params({}) == ""
    assert encode_params(None) == ""
    assert encode_params({"limit": None}) == ""


def test_task_urls():
    assert is_task_url("/rest/v0/tasks/0m0abc")
    assert not is_task_url("/rest/v0/vms/abc")
    assert not is_task_url(None)
    assert extract_task_id("/rest/v0/tasks/0m0abc") == "0m0abc"
    assert extract_task_id("tasks/0m0abc") == "0m0abc"
    assert extract_task_id(" 0m0abc ") == "0m0abc"


@pytest.mark.parametrize("path", ["/rest/v0/srs/abc", "/srs/abc", "srs/abc"])
def test_extract_id_from_path(path):
    assert extract_id_from_path(path, "srs") == "abc"


@pytest.mark.parametrize("path", ["/rest/v0/vms/abc", "/rest/v0/srs/", "/rest/v0/srs/abc/tags", "abc"])
def test_extract_id_from_path_rejects(path):
    with pytest.raises(DecodeError):
        extract_id_from_path(path, "srs")


def test_ids_from_paths():
    assert ids_from_paths(["/rest/v0/vms/a", "/rest/v0/vms/b"], "vms") == ["a", "b"]
