import pytest

from clusterlint.kube.object_filter import ObjectFilter, new_object_filter


def test_namespace_error():
    with pytest.raises(ValueError) as excinfo:
        new_object_filter("kube-system", "kube-system")
    assert str(excinfo.value) == (
        "cannot specify both include and exclude namespace conditions"
    )


def test_namespace_options_include():
    object_filter = new_object_filter("namespace-1", "")
    assert object_filter.namespace_options({}) == {
        "fieldSelector": "metadata.namespace=namespace-1"
    }


def test_namespace_options_exclude():
    object_filter = new_object_filter("", "namespace-2")
    assert object_filter.namespace_options({}) == {
        "fieldSelector": "metadata.namespace!=namespace-2"
    }


def test_empty_filter_leaves_options_alone():
    object_filter = new_object_filter("", "")
    assert object_filter == ObjectFilter()
    assert object_filter.namespace_options({"limit": 5}) == {"limit": 5}


def test_namespace_options_does_not_mutate_input():
    opts = {"limit": 5}
    result = new_object_filter("namespace-1", "").namespace_options(opts)
    assert opts == {"limit": 5}
    assert result["limit"] == 5
    assert result["fieldSelector"] == "metadata.namespace=namespace-1"


def test_namespace_value_is_escaped():
    result = ObjectFilter(include_namespace="a,b=c").namespace_options({})
    assert result["fieldSelector"] == "metadata.namespace=a\\,b\\=c"