"""
Virtual path helpers — slash-delimited names in the build tool's path space.

Virtual names never touch ``os.path``.  Every function here is a pure
string transform and gives the same answer on POSIX and Windows hosts.
"""
from typing import List

SEP = "/"


def vclean(p: str) -> str:
    """
    Return the shortest lexically equivalent slash path.

    Collapses repeated slashes, drops ``.`` elements and resolves ``..``
    against the preceding element.  ``..`` cannot climb above a leading
    ``/``.  An empty result becomes ``"."``.
    """
    if p == "":
        return "."

    rooted = p.startswith(SEP)
    out: List[str] = []
    for elem in p.split(SEP):
        if elem in ("", "."):
            continue
        if elem == "..":
            if out and out[-1] != "..":
                out.pop()
            elif not rooted:
                out.append("..")
            continue
        out.append(elem)

    cleaned = SEP.join(out)
    if rooted:
        return SEP + cleaned
    return cleaned or "."


def vjoin(*parts: str) -> str:
    """Join non-empty parts with ``/`` and clean the result."""
    joined = SEP.join(p for p in parts if p)
    if joined == "":
        return ""
    return vclean(joined)


def vdir(full_name: str) -> str:
    """Directory part of a virtual name (``"."`` when there is none)."""
    idx = full_name.rfind(SEP)
    return vclean(full_name[: idx + 1])


def vbase(full_name: str) -> str:
    """Last element of a virtual name, trailing slashes ignored."""
    if full_name == "":
        return "."
    stripped = full_name.rstrip(SEP)
    if stripped == "":
        return SEP
    return stripped[stripped.rfind(SEP) + 1:]


def prepend_dir(full_name: str) -> str:
    """
    Directory of *full_name* rooted at the virtual root.

    ``pkg/mod.py`` → ``/pkg``; ``mod.py`` → ``/``.  This is the value the
    compiler embeds as the source location in its output.
    """
    return vjoin(SEP, vdir(full_name))
