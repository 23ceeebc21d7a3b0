from soltnet.tx_format.params import param_index, placeholder, resolve_value


def test_resolves_first_param():
    assert resolve_value("$1", ["abc"]) == "abc"


def test_out_of_range_param_is_left_unchanged():
    assert resolve_value("$5", ["abc"]) == "$5"


def test_literal_is_left_unchanged():
    assert resolve_value("literal", []) == "literal"


def test_non_string_values_pass_through():
    value = {"type": "u8", "data": "$1"}
    assert resolve_value(value, ["7"]) is value
    assert resolve_value(42, ["7"]) == 42
    assert resolve_value(None, ["7"]) is None


def test_param_index_rejects_zero_and_leading_zeros():
    assert param_index("$0") is None
    assert param_index("$01") is None
    assert param_index("$1x") is None
    assert param_index("$12") == 11


def test_placeholder_is_one_based():
    assert placeholder(0) == "$1"
    assert placeholder(3) == "$4"
