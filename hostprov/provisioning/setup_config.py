"""Setup configuration file for the remote setup scripts.

The file is a list of shell assignments (``KEY="value";``) sourced as
``config.sh`` on the instance. It holds plaintext passwords: callers must
transfer it and then delete it.
"""

import logging
import os
import shutil
import tempfile

from hostprov.errors import ConfigError

logger = logging.getLogger(__name__)


def shell_quote(value):
    """Escape *value* for use inside double quotes in sh."""
    value = str(value)
    for ch in ("\\", '"', "$", "`"):
        value = value.replace(ch, "\\" + ch)
    return value


def assignment(key, value):
    return f'{key}="{shell_quote(value)}";\n'


async def build_setup_config(ctx, generator, settings, server_name, username, domain_name):
    """Write a fresh setup config for the instance in *ctx* and return its path.

    Passwords are generated through *generator*, so each one is in the
    password log before it is written here.
    """
    ctx.password_log.note("adminuser_name", settings.admin_username)
    ctx.password_log.note("customeruser_name", username)

    fd, path = tempfile.mkstemp(prefix=f"linode_setup_config_{ctx.instance_id}.", suffix=".sh")
    os.close(fd)
    try:
        if settings.setup_config_template:
            try:
                shutil.copyfile(settings.setup_config_template, path)
            except OSError as e:
                raise ConfigError(f"Could not read setup config template {settings.setup_config_template}: {e}") from e

        with open(path, "a") as f:
            f.write("\n# Used by setup.sh\n")
            f.write(assignment("LINODEID", ctx.instance_id))
            f.write(assignment("ADMINUSERNAME", settings.admin_username))
            f.write(assignment("ADMINUSERPASS", await generator.generate("adminuser_pass")))
            f.write(assignment("SERVERNAME", server_name))
            f.write(assignment("MYSQLROOTPASS", await generator.generate("mysql_root")))
            f.write(assignment("NOTIFYEMAIL", settings.notify_email))
            f.write("\n# Used by customer_setup.sh\n")
            f.write(assignment("USER", username))
            f.write(assignment("PASS", await generator.generate("customeruser_pass")))
            f.write(assignment("DOMAINNAME", domain_name))
    except BaseException:
        os.unlink(path)
        raise

    logger.info(f"Setup config written to {path}")
    return path
