"""
This module generates the user data for worker nodes which bootstrap with
``nodeadm``.

The user data is a MIME multipart document with up to three parts, always
written in this order:

#. a ``text/x-shellscript`` part with the pre and post bootstrap commands,
   only if there are any,
#. the ``application/node.eks.aws`` part with the ``NodeConfig`` which
   tells ``nodeadm`` how to join the cluster,
#. a ``text/cloud-config`` part with files, NTP, users, disks and mounts,
   only if any of NTP, users, disk setup or mounts is configured.

Example:
    >>> node_input = NodeInput(cluster_name="test-cluster",
    ...                        api_server_endpoint="https://example.com",
    ...                        ca_cert="test-ca-cert",
    ...                        node_group_name="test-nodegroup")
    >>> userdata = new_node(node_input)
"""
import copy

import yaml
from jinja2 import TemplateError

from kubeboot import (LABEL_NAMESPACE, DEFAULT_BOUNDARY, DEFAULT_SERVICE_CIDR,
                      DEFAULT_MAX_PODS, MAX_PODS_WITH_USE_MAX_PODS)
from kubeboot.provision import cloud_config
from kubeboot.provision.templates import MIME_HEADER, get_environment
from kubeboot.util.logger import get_logger

LOGGER = get_logger(__name__)

NODE_LABELS_ARG = "node-labels"

NODE_LABEL_IMAGE = f"{LABEL_NAMESPACE}/nodegroup-image="
NODE_LABEL_NODE_GROUP = f"{LABEL_NAMESPACE}/nodegroup="
NODE_LABEL_CAPACITY_TYPE = f"{LABEL_NAMESPACE}/capacityType="

CAPACITY_TYPE_ON_DEMAND = "onDemand"
CAPACITY_TYPE_SPOT = "spot"

ENCODING = "utf-8"


class UserDataError(Exception):
    """Base class for all errors while generating user data"""


class MissingRequiredField(UserDataError):
    """A mandatory field of the :class:`NodeInput` is empty

    Args:
        field (str): the name of the missing attribute
    """
    descriptions = {
        "api_server_endpoint": "API server endpoint",
        "ca_cert": "CA certificate",
        "cluster_name": "cluster name",
        "node_group_name": "node group name",
    }

    def __init__(self, field):
        self.field = field
        super().__init__(
            f"{self.descriptions.get(field, field)} is required for nodeadm")


class TemplateRenderingFailure(UserDataError):
    """A part of the user data could not be rendered"""


class NodeInput:  # pylint: disable=too-many-instance-attributes
    """
    All the information required to generate user data for a node.

    Args:
        cluster_name (str): the name of the cluster to join
        api_server_endpoint (str): the URL of the API server
        ca_cert (str): the CA certificate of the API server
        node_group_name (str): the node group this node belongs to
        kubelet_extra_args (dict): extra kubelet flags, the key without the
            leading ``--``. ``node-labels`` is merged with the system labels.
        dns_cluster_ip (str): the IP of the cluster DNS service
        use_max_pods (bool): use the large max pods default
        max_pods (int): explicit max pods, wins over ``use_max_pods``
        service_cidr (str): the service CIDR of the cluster
        container_runtime (str): the container runtime of the node
        pre_bootstrap_commands (list): shell commands run before bootstrap
        post_bootstrap_commands (list): shell commands run after bootstrap
        files (list): :class:`~kubeboot.provision.cloud_config.File` objects
        disk_setup (DiskSetup): partitions and filesystems to create
        mounts (list): mount entries, each a list of strings
        users (list): :class:`~kubeboot.provision.cloud_config.User` objects
        ntp (NTP): the NTP configuration
        ami_image_id (str): the image the node boots, used as a label
        capacity_type (str): ``onDemand``, ``spot`` or any other string
        boundary (str): the MIME boundary, defaults to ``//``

    Attributes:
        cluster_dns (str): the resolved cluster DNS address
        node_labels (str): the merged node labels
    """
    # pylint: disable=too-many-arguments,too-many-locals
    def __init__(self, cluster_name="", api_server_endpoint="", ca_cert="",
                 node_group_name="", kubelet_extra_args=None,
                 dns_cluster_ip=None, use_max_pods=None, max_pods=None,
                 service_cidr="", container_runtime=None,
                 pre_bootstrap_commands=None, post_bootstrap_commands=None,
                 files=None, disk_setup=None, mounts=None, users=None,
                 ntp=None, ami_image_id="", capacity_type=None, boundary=""):
        self.cluster_name = cluster_name
        self.api_server_endpoint = api_server_endpoint
        self.ca_cert = ca_cert
        self.node_group_name = node_group_name

        self.kubelet_extra_args = kubelet_extra_args
        self.dns_cluster_ip = dns_cluster_ip
        self.use_max_pods = use_max_pods
        self.max_pods = max_pods
        self.service_cidr = service_cidr
        self.container_runtime = container_runtime

        self.pre_bootstrap_commands = pre_bootstrap_commands
        self.post_bootstrap_commands = post_bootstrap_commands
        self.files = files
        self.disk_setup = disk_setup
        self.mounts = mounts
        self.users = users
        self.ntp = ntp

        self.ami_image_id = ami_image_id
        self.capacity_type = capacity_type

        self.boundary = boundary
        self.cluster_dns = ""
        self.node_labels = ""

    def get_node_labels(self):
        """
        Merge the user's node labels with the labels kubeboot adds.

        The value of the ``node-labels`` kubelet argument always comes
        first. The image and node group labels are only added if the user
        did not set the image label for this image already; the capacity
        type label is always added.

        Returns:
            The comma separated node labels.
        """
        node_labels = (self.kubelet_extra_args or {}).get(NODE_LABELS_ARG, "")

        image_label = f"{NODE_LABEL_IMAGE}{self.ami_image_id}"
        extra_labels = []
        if self.ami_image_id and image_label not in node_labels:
            extra_labels.append(image_label)
        # guarded by the image label, not the node group label
        if self.node_group_name and image_label not in node_labels:
            extra_labels.append(f"{NODE_LABEL_NODE_GROUP}{self.node_group_name}")
        extra_labels.append(
            f"{NODE_LABEL_CAPACITY_TYPE}{self.get_capacity_type_string()}")

        if node_labels:
            return ",".join([node_labels] + extra_labels)
        return ",".join(extra_labels)

    def get_capacity_type_string(self):
        """Returns the capacity type as used in the capacity type label"""
        if not self.capacity_type:
            return "ON_DEMAND"
        if self.capacity_type == CAPACITY_TYPE_SPOT:
            return "SPOT"
        if self.capacity_type == CAPACITY_TYPE_ON_DEMAND:
            return "ON_DEMAND"
        return self.capacity_type.upper()

    @property
    def kubelet_flags(self):
        """The extra kubelet flags except ``node-labels``, sorted by name"""
        return sorted((key, value) for key, value
                      in (self.kubelet_extra_args or {}).items()
                      if key != NODE_LABELS_ARG)

    @property
    def has_bootstrap_commands(self):
        return bool(self.pre_bootstrap_commands or
                    self.post_bootstrap_commands)

    @property
    def has_cloud_config(self):
        return any(section is not None for section in
                   (self.ntp, self.disk_setup, self.mounts, self.users))


def validate_node_input(node_input):
    """
    Check that all fields required to join a cluster are set.

    Args:
        node_input (NodeInput): the input to check

    Raises:
        MissingRequiredField for the first empty field out of API server
        endpoint, CA certificate, cluster name and node group name.
    """
    for field in ("api_server_endpoint", "ca_cert", "cluster_name",
                  "node_group_name"):
        if not getattr(node_input, field):
            raise MissingRequiredField(field)


def resolve_node_input(node_input):
    """
    Fill in all computed fields of a validated input.

    The given ``node_input`` is not modified.

    Args:
        node_input (NodeInput): a validated input

    Returns:
        A new :class:`NodeInput` with max pods, cluster DNS, boundary and
        node labels resolved.
    """
    resolved = copy.deepcopy(node_input)

    if resolved.max_pods is None:
        if resolved.use_max_pods:
            resolved.max_pods = MAX_PODS_WITH_USE_MAX_PODS
        else:
            resolved.max_pods = DEFAULT_MAX_PODS
    if resolved.dns_cluster_ip is not None:
        resolved.cluster_dns = resolved.dns_cluster_ip
    if not resolved.boundary:
        resolved.boundary = DEFAULT_BOUNDARY

    resolved.kubelet_extra_args = dict(resolved.kubelet_extra_args or {})
    resolved.pre_bootstrap_commands = list(resolved.pre_bootstrap_commands or [])
    resolved.post_bootstrap_commands = list(
        resolved.post_bootstrap_commands or [])
    resolved.node_labels = resolved.get_node_labels()

    LOGGER.debug("nodeadm userdata generation - maxPods: %d, node-labels: %s",
                 resolved.max_pods, resolved.node_labels)
    return resolved


class NodeUserData:
    """
    The MIME multipart user data of a single node.

    The input is validated and resolved when the instance is created, the
    document is assembled by :meth:`as_bytes` or :meth:`__str__`.

    Args:
        node_input (NodeInput): the node description, it is not modified

    Raises:
        MissingRequiredField if the input lacks a mandatory field.
    """
    def __init__(self, node_input):
        validate_node_input(node_input)
        self.node_input = resolve_node_input(node_input)
        self._env = get_environment()

    def _render(self, name, **extra):
        ni = self.node_input
        context = dict(vars(ni), kubelet_flags=ni.kubelet_flags, **extra)
        try:
            return self._env.get_template(name).render(**context)
        except TemplateError as err:
            raise TemplateRenderingFailure(
                f"failed to execute {name} template: {err}") from err

    def shell_script_part(self):
        """the ``text/x-shellscript`` part with the bootstrap commands"""
        return self._render("shell")

    def node_config_part(self):
        """the ``application/node.eks.aws`` part with the NodeConfig"""
        return self._render(
            "node",
            service_cidr=self.node_input.service_cidr or DEFAULT_SERVICE_CIDR)

    def cloud_config_part(self):
        """
        the ``text/cloud-config`` part

        The runcmd commands are ordered NTP, users, disk setup, filesystem
        setup and mounts, since mounts need the filesystems created before.
        """
        ni = self.node_input
        try:
            files = cloud_config.files_block(ni.files)
            runcmd = cloud_config.runcmd_block(
                cloud_config.ntp_commands(ni.ntp) +
                cloud_config.users_commands(ni.users) +
                cloud_config.disk_setup_commands(ni.disk_setup) +
                cloud_config.fs_setup_commands(ni.disk_setup) +
                cloud_config.mounts_commands(ni.mounts))
        except (yaml.YAMLError, TypeError, AttributeError, ValueError) as err:
            raise TemplateRenderingFailure(
                f"failed to render cloud-config: {err}") from err
        return self._render("cloud-config", files=files, runcmd=runcmd)

    def __str__(self):
        boundary = self.node_input.boundary.replace(
            "\\", "\\\\").replace('"', '\\"')
        parts = [MIME_HEADER.format(boundary)]

        if self.node_input.has_bootstrap_commands:
            parts.append(self.shell_script_part())

        parts.append(self.node_config_part())

        if self.node_input.has_cloud_config:
            parts.append(self.cloud_config_part())

        return "".join(parts)

    def as_bytes(self):
        """Returns the complete user data encoded as UTF-8"""
        return str(self).encode(ENCODING)


def new_node(node_input):
    """
    Returns the user data to be used on a node instance.

    Args:
        node_input (NodeInput): the node description

    Returns:
        The MIME multipart document as ``bytes``.

    Raises:
        MissingRequiredField, TemplateRenderingFailure
    """
    return NodeUserData(node_input).as_bytes()


render = new_node
