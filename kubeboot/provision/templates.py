"""
Jinja2 templates for the MIME parts of the node user data.

The templates are plain strings; :func:`get_environment` wraps them in a
fresh :class:`jinja2.Environment` so no template state outlives a single
rendering.
"""
from jinja2 import DictLoader, Environment, StrictUndefined

MIME_HEADER = ('MIME-Version: 1.0\n'
               'Content-Type: multipart/mixed; boundary="{}"\n\n')

SHELL_SCRIPT_PART = """
--{{ boundary }}
Content-Type: text/x-shellscript; charset="us-ascii"
MIME-Version: 1.0
Content-Transfer-Encoding: 7bit
Content-Disposition: attachment; filename="commands.sh"

#!/bin/bash
set -o errexit
set -o pipefail
set -o nounset
{%- for cmd in pre_bootstrap_commands %}
{{ cmd }}
{%- endfor %}
{%- for cmd in post_bootstrap_commands %}
{{ cmd }}
{%- endfor %}
--{{ boundary }}--
"""

NODE_CONFIG_PART = """
--{{ boundary }}
Content-Type: application/node.eks.aws

---
apiVersion: node.eks.aws/v1alpha1
kind: NodeConfig
spec:
  cluster:
    name: {{ cluster_name }}
    apiServerEndpoint: {{ api_server_endpoint }}
    certificateAuthority: {{ ca_cert }}
    cidr: {{ service_cidr }}
  kubelet:
    config:
      maxPods: {{ max_pods }}
      {%- if cluster_dns %}
      clusterDNS:
      - {{ cluster_dns }}
      {%- endif %}
    flags:
    - "--node-labels={{ node_labels }}"
    {%- for key, value in kubelet_flags %}
    - "--{{ key }}={{ value }}"
    {%- endfor %}

--{{ boundary }}--"""

CLOUD_CONFIG_PART = """
--{{ boundary }}
Content-Type: text/cloud-config
MIME-Version: 1.0
Content-Transfer-Encoding: 7bit
Content-Disposition: attachment; filename="cloud-config.yaml"

#cloud-config
{{ files }}{{ runcmd }}--{{ boundary }}--"""

TEMPLATES = {
    "shell": SHELL_SCRIPT_PART,
    "node": NODE_CONFIG_PART,
    "cloud-config": CLOUD_CONFIG_PART,
}


def get_environment():
    """Returns a new Jinja2 environment holding all part templates.

    Undefined variables raise instead of rendering as empty strings.
    """
    return Environment(
        loader=DictLoader(TEMPLATES),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
