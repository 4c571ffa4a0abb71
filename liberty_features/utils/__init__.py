def parse_manifest(content: str) -> dict[str, str]:
    """Parse the main section of a jar-style manifest

    Args:
        content: Manifest text, e.g. META-INF/MANIFEST.MF or OSGI-INF/SUBSYSTEM.MF

    Returns:
        Attribute name to value mapping of the main section
    """

    attributes: dict[str, str] = {}
    last_key: str | None = None

    for line in content.splitlines():
        if not line:
            # blank line ends the main section
            break
        if line.startswith(' ') and last_key is not None:
            attributes[last_key] += line[1:]
            continue
        key, sep, value = line.partition(':')
        if not sep:
            continue
        last_key = key.strip()
        attributes[last_key] = value.strip()

    return attributes
