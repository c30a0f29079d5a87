import pytest

from cowsqlkit.benchmark_options import BenchmarkOptions, Workload, parse_workload


@pytest.mark.parametrize(
    "name, expected",
    [
        ("kvwrite", Workload.KV_WRITE),
        ("KvReadWrite", Workload.KV_READ_WRITE),
        ("KVREADWRITE", Workload.KV_READ_WRITE),
        ("unknown", Workload.KV_WRITE),
        ("", Workload.KV_WRITE),
    ],
)
def test_parse_workload(name, expected):
    assert parse_workload(name) is expected


def test_defaults():
    options = BenchmarkOptions()
    assert options.cluster == []
    assert options.cluster_timeout == 60
    assert options.duration == 60
    assert options.workload is Workload.KV_WRITE
    assert options.workers == 1
    assert options.kv_key_size == 32
    assert options.kv_value_size == 1024


def test_cluster_lists_are_independent():
    first = BenchmarkOptions()
    second = BenchmarkOptions()
    first.cluster.append("127.0.0.1:9011")
    assert second.cluster == []