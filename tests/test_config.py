# pylint: disable=redefined-outer-name
"""
tests for kubeboot.config
"""
# pylint: disable=missing-docstring
import textwrap

import pytest

from kubeboot.config import load_config, node_input_from_dict
from kubeboot.provision.cloud_config import (DiskSetup, File, Filesystem, NTP,
                                             Partition, User)
from kubeboot.provision.userdata import new_node

CONFIG = textwrap.dedent("""
    cluster-name: test-cluster
    api-server-endpoint: https://example.com
    ca-cert: test-ca-cert
    node-group-name: test-nodegroup
    dns-cluster-ip: 10.100.0.10
    use-max-pods: true
    capacity-type: spot
    kubelet-extra-args:
      node-labels: app=my-app
      register-with-taints: dedicated=infra:NoSchedule
      rotate-certificates: true
      max-open-files: 1000000
    pre-bootstrap-commands:
      - echo pre
    files:
      - path: /etc/motd
        content: hello
        permissions: "0644"
    ntp:
      servers:
        - 0.pool.ntp.org
    users:
      - name: alice
        ssh-authorized-keys:
          - ssh-ed25519 AAAA alice@host
    disk-setup:
      partitions:
        - device: /dev/nvme1n1
          layout: true
          table-type: gpt
      filesystems:
        - device: /dev/nvme1n1
          partition: 1
          filesystem: ext4
          label: data
    mounts:
      - [LABEL=data, /var/lib/data]
    """)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "node.yml"
    path.write_text(CONFIG)
    return str(path)


def test_load_config(config_file):
    ni = load_config(config_file)

    assert ni.cluster_name == "test-cluster"
    assert ni.api_server_endpoint == "https://example.com"
    assert ni.dns_cluster_ip == "10.100.0.10"
    assert ni.use_max_pods is True
    assert ni.capacity_type == "spot"
    assert ni.kubelet_extra_args == {
        "node-labels": "app=my-app",
        "register-with-taints": "dedicated=infra:NoSchedule",
        "rotate-certificates": "true",
        "max-open-files": "1000000",
    }
    assert ni.pre_bootstrap_commands == ["echo pre"]
    assert ni.mounts == [["LABEL=data", "/var/lib/data"]]

    assert isinstance(ni.files[0], File)
    assert ni.files[0].permissions == "0644"
    assert isinstance(ni.ntp, NTP)
    assert ni.ntp.servers == ["0.pool.ntp.org"]
    assert isinstance(ni.users[0], User)
    assert ni.users[0].ssh_authorized_keys == ["ssh-ed25519 AAAA alice@host"]
    assert isinstance(ni.disk_setup, DiskSetup)
    assert isinstance(ni.disk_setup.partitions[0], Partition)
    assert ni.disk_setup.partitions[0].layout is True
    assert isinstance(ni.disk_setup.filesystems[0], Filesystem)
    assert ni.disk_setup.filesystems[0].target == "/dev/nvme1n1p1"


def test_loaded_config_renders(config_file):
    out = new_node(load_config(config_file)).decode()

    assert "#!/bin/bash" in out
    assert "maxPods: 110" in out
    assert "clusterDNS:\n      - 10.100.0.10" in out
    assert '"--node-labels=app=my-app,' in out
    assert "eks.amazonaws.com/capacityType=SPOT" in out
    assert '"--rotate-certificates=true"' in out
    assert "Content-Type: text/cloud-config" in out


def test_minimal_config():
    ni = node_input_from_dict({"cluster-name": "test-cluster"})
    assert ni.cluster_name == "test-cluster"
    assert ni.files is None
    assert ni.ntp is None
    assert ni.disk_setup is None


def test_max_pods_is_int():
    assert node_input_from_dict({"max-pods": "30"}).max_pods == 30


@pytest.mark.parametrize("config", [
    {"cluster": "test"},
    {"node-labels": "a=b"},
    {"files": [{"path": "/etc/motd", "content": "x", "mode": "0644"}]},
    {"files": [{"content": "x"}]},
    {"files": {"path": "/etc/motd"}},
    {"ntp": ["0.pool.ntp.org"]},
    {"disk-setup": {"devices": []}},
    {"kubelet-extra-args": ["node-labels=a=b"]},
    {"mounts": "LABEL=data /data"},
    {"cluster-dns": "10.0.0.10"},
    {"mounts": ["LABEL=data /data"]},
    {"disk-setup": {"filesystems": [{"device": "/dev/sdb",
                                     "filesystem": "ext4",
                                     "extra-opts": "-F"}]}},
])
def test_invalid_config(config):
    with pytest.raises(ValueError):
        node_input_from_dict(config)


def test_user_groups_list_renders():
    ni = node_input_from_dict({
        "cluster-name": "test-cluster",
        "api-server-endpoint": "https://example.com",
        "ca-cert": "test-ca-cert",
        "node-group-name": "test-nodegroup",
        "users": [{"name": "alice", "groups": ["wheel", "docker"]}],
    })
    assert "--groups wheel,docker alice" in new_node(ni).decode()
