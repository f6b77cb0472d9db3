# tests/test_lookup.py
import pytest

from xoclient.errors import DecodeError
from xoclient.legacy import Host, Network, Pool, StorageRepository
from xoclient.lookup import find_all_matching, get_all_objects_of_type


class RecordingRpc:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def call(self, method, params=None, out=None, **kwargs):
        self.calls.append((method, params))
        return self.result


OBJECTS = {
    "sr-1": {"id": "sr-1", "type": "SR", "name_label": "Local storage", "$poolId": "pool-a", "SR_type": "lvm",
             "tags": ["fast", "ssd"], "size": "1024"},
    "sr-2": {"id": "sr-2", "type": "SR", "name_label": "Local storage", "$poolId": "pool-b", "SR_type": "lvm",
             "tags": ["fast"]},
    "sr-3": {"id": "sr-3", "type": "SR", "name_label": "NFS", "$poolId": "pool-a", "SR_type": "nfs"},
    "vm-1": {"id": "vm-1", "type": "VM", "name_label": "Local storage", "$poolId": "pool-a"},
}


def test_kind_filter_is_sent_and_applied():
    rpc = RecordingRpc(OBJECTS)

    srs = get_all_objects_of_type(rpc, StorageRepository)

    assert rpc.calls == [("xo.getAllObjects", {"filter": {"type": "SR"}})]
    assert sorted(sr.id for sr in srs) == ["sr-1", "sr-2", "sr-3"]
    assert {sr.id: sr.size for sr in srs}["sr-1"] == 1024


def test_match_by_name_and_pool():
    rpc = RecordingRpc(OBJECTS)
    found = find_all_matching(rpc, StorageRepository(name_label="Local storage", pool_id="pool-a"))
    assert [sr.id for sr in found] == ["sr-1"]


def test_zero_fields_do_not_constrain():
    rpc = RecordingRpc(OBJECTS)
    found = find_all_matching(rpc, StorageRepository(sr_type="lvm"))
    assert sorted(sr.id for sr in found) == ["sr-1", "sr-2"]


def test_tags_are_a_containment_query():
    rpc = RecordingRpc(OBJECTS)
    assert [sr.id for sr in find_all_matching(rpc, StorageRepository(tags=["ssd"]))] == ["sr-1"]
    assert sorted(sr.id for sr in find_all_matching(rpc, StorageRepository(tags=["fast"]))) == ["sr-1", "sr-2"]
    assert find_all_matching(rpc, StorageRepository(tags=["fast", "nvme"])) == []


def test_id_takes_precedence():
    rpc = RecordingRpc(OBJECTS)
    found = find_all_matching(rpc, StorageRepository(id="sr-3", name_label="Local storage"))
    assert [sr.id for sr in found] == ["sr-3"]


def test_list_results_are_accepted():
    rpc = RecordingRpc([{"id": "h1", "type": "host", "name_label": "xcp-1", "address": "10.0.0.1"},
                        {"id": "h2", "type": "host", "name_label": "xcp-2", "address": "10.0.0.2"}])
    found = find_all_matching(rpc, Host(address="10.0.0.2"))
    assert [h.id for h in found] == ["h2"]


def test_empty_result():
    assert get_all_objects_of_type(RecordingRpc(None), Pool) == []


def test_unexpected_result_shape():
    with pytest.raises(DecodeError):
        get_all_objects_of_type(RecordingRpc("nope"), Network)


def test_different_models_never_match():
    assert not Pool(name_label="x").matches(Network(name_label="x"))
