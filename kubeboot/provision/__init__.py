"""

.. _provision:

kubeboot.provision
------------------

userdata
~~~~~~~~

Assembles the MIME multipart user data a worker node boots with.
See :py:func:`kubeboot.provision.userdata.new_node`.

cloud_config
~~~~~~~~~~~~

The value types (files, NTP, users, disks, mounts) of the optional
``text/cloud-config`` part and the renderers turning them into
``write_files`` and ``runcmd`` entries.

templates
~~~~~~~~~

The Jinja2 templates of the single parts.

"""
