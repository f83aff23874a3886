"""
Preview URL of a tenant domain.
"""

import ipaddress

from opsportal.config import settings


def _is_ip(hostname: str) -> bool:
    try:
        ipaddress.ip_address(hostname.strip("[]"))
    except ValueError:
        return False
    return True


def generate_preview_url(
    domain_name: str,
    current_host: str,
    dev_port: int | None = None,
) -> str:
    """
    Build the URL at which a tenant domain can be previewed.

    - ``acme.example.com`` (dotted) -> ``https://acme.example.com``
    - ``acme`` on ``app.example.com`` -> ``https://acme.example.com``
    - ``acme`` on ``example.com`` -> ``https://acme.example.com``
    - ``acme`` on ``localhost:8080`` -> ``http://acme.localhost:8080``
    """
    name = domain_name.strip().lower()
    if "." in name:
        return f"https://{name}"

    host = current_host.strip().lower()
    if host.startswith("["):
        address, _, rest = host.partition("]")
        hostname, port = address + "]", rest.lstrip(":")
    else:
        hostname, _, port = host.partition(":")
    labels = [] if _is_ip(hostname) else [label for label in hostname.split(".") if label]

    if len(labels) >= 3:
        return f"https://{name}.{'.'.join(labels[1:])}"
    if len(labels) == 2:
        return f"https://{name}.{hostname}"

    port = port or str(dev_port or settings.preview_dev_port)
    return f"http://{name}.localhost:{port}"
