"""
Read a node description from a YAML configuration file.

The keys are the attribute names of
:class:`~kubeboot.provision.userdata.NodeInput` written with hyphens::

    cluster-name: test-cluster
    api-server-endpoint: https://example.com
    ca-cert: LS0tLS1CRUdJTi...
    node-group-name: workers
    use-max-pods: true
    kubelet-extra-args:
      node-labels: app=my-app
      register-with-taints: dedicated=infra:NoSchedule
    ntp:
      servers:
        - 0.pool.ntp.org
    disk-setup:
      partitions:
        - device: /dev/nvme1n1
          layout: true
      filesystems:
        - device: /dev/nvme1n1
          partition: 1
          filesystem: ext4
          label: data
    mounts:
      - [LABEL=data, /var/lib/data]

Only the structure is checked here, the values are validated when the
user data is generated.
"""
import inspect

import yaml

from kubeboot.provision.cloud_config import (DiskSetup, File, Filesystem, NTP,
                                             Partition, User)
from kubeboot.provision.userdata import NodeInput
from kubeboot.util.logger import get_logger

LOGGER = get_logger(__name__)


def _kwargs(section, data, cls):
    """translate a mapping with hyphenated keys to keyword arguments of cls"""
    if not isinstance(data, dict):
        raise ValueError(f"'{section}' needs to be a mapping")

    allowed = inspect.signature(cls).parameters
    kwargs = {}
    for key, value in data.items():
        name = str(key).replace("-", "_")
        if name not in allowed:
            raise ValueError(f"unknown key '{key}' under '{section}'")
        kwargs[name] = value
    return kwargs


def _build(section, data, cls):
    try:
        return cls(**_kwargs(section, data, cls))
    except TypeError as err:
        raise ValueError(f"invalid '{section}': {err}") from err


def _build_list(section, data, cls):
    if data is None:
        return None
    if not isinstance(data, list):
        raise ValueError(f"'{section}' needs to be a list")
    return [_build(section, item, cls) for item in data]


def _flag_value(value):
    """kubelet flags are strings, YAML booleans are written lower case"""
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def node_input_from_dict(config_dict):
    """
    Create a :class:`NodeInput` from a parsed configuration.

    Args:
        config_dict (dict): the configuration with hyphenated keys

    Returns:
        A :class:`NodeInput`, neither validated nor resolved.

    Raises:
        ValueError if a key is unknown or a section has the wrong shape.
    """
    kwargs = _kwargs("config", config_dict or {}, NodeInput)

    if kwargs.get("kubelet_extra_args") is not None:
        args = kwargs["kubelet_extra_args"]
        if not isinstance(args, dict):
            raise ValueError("'kubelet-extra-args' needs to be a mapping")
        kwargs["kubelet_extra_args"] = {str(key): _flag_value(value)
                                        for key, value in args.items()}

    if kwargs.get("max_pods") is not None:
        kwargs["max_pods"] = int(kwargs["max_pods"])

    for name in ("pre_bootstrap_commands", "post_bootstrap_commands",
                 "mounts"):
        if kwargs.get(name) is not None and not isinstance(kwargs[name], list):
            raise ValueError(f"'{name.replace('_', '-')}' needs to be a list")

    for entry in kwargs.get("mounts") or []:
        if not isinstance(entry, list):
            raise ValueError(f"mount entry '{entry}' needs to be a list")

    kwargs["files"] = _build_list("files", kwargs.get("files"), File)
    kwargs["users"] = _build_list("users", kwargs.get("users"), User)

    if kwargs.get("ntp") is not None:
        kwargs["ntp"] = _build("ntp", kwargs["ntp"], NTP)

    if kwargs.get("disk_setup") is not None:
        disk_setup = _kwargs("disk-setup", kwargs["disk_setup"], DiskSetup)
        kwargs["disk_setup"] = DiskSetup(
            partitions=_build_list("partitions",
                                   disk_setup.get("partitions"), Partition),
            filesystems=_build_list("filesystems",
                                    disk_setup.get("filesystems"), Filesystem))
        for fs in kwargs["disk_setup"].filesystems:
            if not isinstance(fs.extra_opts, list):
                raise ValueError(
                    f"'extra-opts' of {fs.device} needs to be a list")

    return NodeInput(**kwargs)


def load_config(path):
    """
    Read a node description from a YAML file.

    Args:
        path (str): the path of the configuration file

    Returns:
        A :class:`NodeInput`.
    """
    with open(path) as stream:
        config_dict = yaml.safe_load(stream)

    LOGGER.debug("read node configuration from %s", path)
    return node_input_from_dict(config_dict)
