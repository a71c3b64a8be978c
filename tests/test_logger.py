import logging

import pytest

from kubeboot.util.logger import (get_logger, set_level, LOG_LEVELS,
                                  DEFAULT_LOG_LEVEL)


def test_logger_default_level():
    log = get_logger("test-default")
    assert DEFAULT_LOG_LEVEL == 3
    assert log.level == logging.INFO
    assert not log.disabled


def test_logger_single_handler():
    log = get_logger("test-handlers")
    log = get_logger("test-handlers")
    assert len(log.handlers) == 1


def test_logger_levels():
    expected = {1: logging.ERROR, 2: logging.WARNING, 3: logging.INFO,
                4: logging.DEBUG}
    for i in LOG_LEVELS:
        log = get_logger("test", i)
        if i == 0:
            assert log.disabled
        else:
            assert not log.disabled
            assert log.level == expected[i]


def test_named_levels():
    log = logging.getLogger("test-named")
    set_level(log, "debug")
    assert log.level == logging.DEBUG
    set_level(log, "quiet")
    assert log.disabled


def test_logger_fail():
    for i in [-1, 100, 23, 42, "verbose"]:
        with pytest.raises(ValueError):
            get_logger("test", i)


def test_debug_output_after_set_level(caplog):
    from kubeboot.provision import userdata

    ni = userdata.NodeInput(cluster_name="test-cluster",
                            api_server_endpoint="https://example.com",
                            ca_cert="test-ca-cert",
                            node_group_name="test-nodegroup")
    userdata.resolve_node_input(ni)
    assert "maxPods" not in caplog.text

    set_level(userdata.LOGGER, "debug")
    try:
        userdata.resolve_node_input(ni)
    finally:
        set_level(userdata.LOGGER, DEFAULT_LOG_LEVEL)
    assert "maxPods: 58" in caplog.text
    assert "capacityType=ON_DEMAND" in caplog.text
