"""
Value types and renderers for the ``text/cloud-config`` part of the node
user data.

The files are written with cloud-init's ``write_files`` module. Everything
else (NTP, user accounts, disks, filesystems and mounts) is turned into shell
commands which are appended, in that order, under the single ``runcmd`` key.
Contents and commands are never interpreted, only quoted and serialized.
"""
import shlex

import yaml

MBR_TABLE_TYPE = "mbr"
AUTO_PARTITIONS = ("auto", "any", "none")
MOUNT_DEFAULTS = ["auto", "defaults,nofail", "0", "2"]

CHRONY_CONF = "/etc/chrony.conf"
FSTAB = "/etc/fstab"
SUDOERS_DIR = "/etc/sudoers.d"


class File:  # pylint: disable=too-few-public-methods,too-many-arguments
    """A file to write on the instance.

    Args:
        path (str): e.g. /etc/kubernetes/kubelet/extra.conf
        content (str): the content of the file, written as is
        owner (str): e.g. root:root
        permissions (str): e.g. "0644", as string
        encoding (str): optional cloud-init encoding of ``content``,
            e.g. ``b64`` or ``gzip+base64``
        append (bool): append to an existing file instead of replacing it
    """
    def __init__(self, path, content, owner=None, permissions=None,
                 encoding=None, append=False):
        self.path = path
        self.content = content
        self.owner = owner
        self.permissions = permissions
        self.encoding = encoding
        self.append = append

    def to_dict(self):
        """return the ``write_files`` entry for this file"""
        data = {"path": self.path}
        if self.owner:
            data["owner"] = self.owner
        if self.permissions:
            data["permissions"] = self.permissions
        if self.encoding:
            data["encoding"] = self.encoding
        if self.append:
            data["append"] = True
        data["content"] = self.content
        return data


class NTP:  # pylint: disable=too-few-public-methods
    """NTP servers the node should synchronize with.

    ``enabled`` set to ``False`` switches the section off while keeping the
    server list around.
    """
    def __init__(self, servers=None, enabled=None):
        self.servers = servers or []
        self.enabled = enabled


class User:  # pylint: disable=too-few-public-methods,too-many-instance-attributes
    """A user account to create on the node.

    Args:
        name (str): the login name
        gecos (str): the comment field, usually the full name
        groups (str or list): supplementary groups, comma separated or
            as a list
        home_dir (str): defaults to /home/<name>
        inactive (bool): create the account as expired
        shell (str): the login shell
        passwd (str): an already hashed password
        primary_group (str): the primary group
        lock_password (bool): lock the password, keys only login
        sudo (str): a sudoers rule, e.g. ``ALL=(ALL) NOPASSWD:ALL``
        ssh_authorized_keys (list): public keys allowed to log in
    """
    # pylint: disable=too-many-arguments
    def __init__(self, name, gecos=None, groups=None, home_dir=None,
                 inactive=None, shell=None, passwd=None, primary_group=None,
                 lock_password=None, sudo=None, ssh_authorized_keys=None):
        self.name = name
        self.gecos = gecos
        self.groups = groups
        self.home_dir = home_dir
        self.inactive = inactive
        self.shell = shell
        self.passwd = passwd
        self.primary_group = primary_group
        self.lock_password = lock_password
        self.sudo = sudo
        self.ssh_authorized_keys = ssh_authorized_keys or []

    @property
    def home(self):
        return self.home_dir or f"/home/{self.name}"


class Partition:  # pylint: disable=too-few-public-methods
    """A partition table for a single device.

    ``table_type`` is either ``gpt`` or ``mbr``. With ``layout`` set, a
    single partition spanning the whole device is created.
    """
    def __init__(self, device, layout=False, overwrite=False,
                 table_type="gpt"):
        self.device = device
        self.layout = layout
        self.overwrite = overwrite
        self.table_type = table_type


class Filesystem:  # pylint: disable=too-few-public-methods,too-many-arguments
    """A filesystem to create on a device or one of its partitions."""
    def __init__(self, device, filesystem, label=None, partition=None,
                 overwrite=False, extra_opts=None):
        self.device = device
        self.filesystem = filesystem
        self.label = label
        self.partition = partition
        self.overwrite = overwrite
        self.extra_opts = extra_opts or []

    @property
    def target(self):
        """The block device ``mkfs`` runs against.

        ``/dev/sdb`` with partition ``1`` becomes ``/dev/sdb1``, devices
        whose name ends in a digit get a ``p`` separator (``/dev/nvme1n1p1``).
        """
        if not self.partition or str(self.partition) in AUTO_PARTITIONS:
            return self.device
        sep = "p" if self.device[-1:].isdigit() else ""
        return f"{self.device}{sep}{self.partition}"


class DiskSetup:  # pylint: disable=too-few-public-methods
    """Partitions and filesystems to prepare before mounting."""
    def __init__(self, partitions=None, filesystems=None):
        self.partitions = partitions or []
        self.filesystems = filesystems or []


def _unless_present(device, cmd, overwrite):
    if overwrite:
        return cmd
    return f"blkid {shlex.quote(device)} >/dev/null 2>&1 || {cmd}"


def files_block(files):
    """
    Render the ``write_files`` block of the cloud-config.

    Args:
        files (list): a list of :class:`File`, may be None

    Returns:
        The YAML text of the block.
    """
    entries = [f.to_dict() for f in files or []]
    return yaml.safe_dump({"write_files": entries},
                          default_flow_style=False, sort_keys=False,
                          width=float("inf"))


def runcmd_block(commands):
    """Render the ``runcmd`` block of the cloud-config."""
    return yaml.safe_dump({"runcmd": list(commands)},
                          default_flow_style=False, sort_keys=False,
                          width=float("inf"))


def ntp_commands(ntp):
    """Point chrony at the configured NTP servers."""
    if ntp is None or ntp.enabled is False or not ntp.servers:
        return []

    cmds = [f"echo {shlex.quote(f'server {server} iburst')} >> {CHRONY_CONF}"
            for server in ntp.servers]
    cmds.append("systemctl restart chronyd")
    return cmds


def _useradd(user):
    args = ["useradd", "--create-home"]
    if user.gecos:
        args += ["--comment", user.gecos]
    if user.home_dir:
        args += ["--home-dir", user.home_dir]
    if user.shell:
        args += ["--shell", user.shell]
    if user.primary_group:
        args += ["--gid", user.primary_group]
    if user.groups:
        groups = user.groups
        if isinstance(groups, (list, tuple)):
            groups = ",".join(groups)
        args += ["--groups", groups]
    if user.passwd:
        args += ["--password", user.passwd]
    if user.inactive:
        args += ["--expiredate", "1970-01-02"]
    args.append(user.name)

    name = shlex.quote(user.name)
    return f"id -u {name} >/dev/null 2>&1 || " + " ".join(
        shlex.quote(arg) for arg in args)


def users_commands(users):
    """
    Create the user accounts.

    Account creation is skipped for users that already exist, so the
    commands can run more than once.
    """
    cmds = []
    for user in users or []:
        name = shlex.quote(user.name)
        cmds.append(_useradd(user))

        if user.lock_password:
            cmds.append(f"passwd -l {name}")

        if user.sudo:
            sudoers = shlex.quote(f"{SUDOERS_DIR}/90-{user.name}")
            rule = shlex.quote(f"{user.name} {user.sudo}")
            cmds.append(f"echo {rule} > {sudoers}")
            cmds.append(f"chmod 0440 {sudoers}")

        if user.ssh_authorized_keys:
            ssh_dir = f"{user.home}/.ssh"
            keys = f"{ssh_dir}/authorized_keys"
            cmds.append(f"mkdir -p {shlex.quote(ssh_dir)}")
            for key in user.ssh_authorized_keys:
                cmds.append(f"echo {shlex.quote(key)} >> {shlex.quote(keys)}")
            cmds.append(f"chmod 0700 {shlex.quote(ssh_dir)}")
            cmds.append(f"chmod 0600 {shlex.quote(keys)}")
            cmds.append(f"chown -R {name}: {shlex.quote(ssh_dir)}")
    return cmds


def disk_setup_commands(disk_setup):
    """
    Write partition tables.

    Devices that already carry a signature are left alone unless the
    partition asks for ``overwrite``.
    """
    if disk_setup is None or not disk_setup.partitions:
        return []

    cmds = []
    for part in disk_setup.partitions:
        label = "msdos" if part.table_type == MBR_TABLE_TYPE else part.table_type
        cmd = f"parted --script {shlex.quote(part.device)} mklabel {label}"
        if part.layout:
            cmd += " mkpart primary 0% 100%"
        cmds.append(_unless_present(part.device, cmd, part.overwrite))

    # partition device nodes show up asynchronously
    cmds.append("udevadm settle")
    return cmds


def fs_setup_commands(disk_setup):
    """Create the filesystems described in ``disk_setup``."""
    if disk_setup is None:
        return []

    cmds = []
    for fs in disk_setup.filesystems:
        if not isinstance(fs.extra_opts, (list, tuple)):
            raise ValueError(
                f"extra_opts of {fs.device} needs to be a list of arguments")
        args = ["mkfs", "-t", fs.filesystem]
        if fs.label:
            args += ["-L", fs.label]
        args += fs.extra_opts
        args.append(fs.target)
        cmd = " ".join(shlex.quote(arg) for arg in args)
        cmds.append(_unless_present(fs.target, cmd, fs.overwrite))
    return cmds


def mounts_commands(mounts):
    """
    Add the mount points to /etc/fstab and mount them.

    Every entry is a list of ``[spec, mount_point, fs_type, options, dump,
    pass]``; missing trailing fields take the values of
    :data:`MOUNT_DEFAULTS`. Entries without a mount point are skipped.

    Raises:
        ValueError if an entry is not a list.
    """
    cmds = []
    for entry in mounts or []:
        if not isinstance(entry, (list, tuple)):
            raise ValueError(f"mount entry {entry!r} needs to be a list")
        if len(entry) < 2:
            continue
        fields = list(entry) + MOUNT_DEFAULTS[len(entry) - 2:]
        line = shlex.quote(" ".join(str(field) for field in fields[:6]))
        cmds.append(f"mkdir -p {shlex.quote(fields[1])}")
        cmds.append(f"grep -qxF {line} {FSTAB} || echo {line} >> {FSTAB}")

    if cmds:
        cmds.append("mount -a")
    return cmds
