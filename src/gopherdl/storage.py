from __future__ import annotations

from pathlib import Path


class PersistenceError(Exception):
    pass


def resolve_target(out_dir: Path, rel_path: Path) -> Path:
    root = out_dir.resolve()
    target = (root / rel_path).resolve()
    # Selectors may contain "..": never write outside the output root.
    if target != root and root not in target.parents:
        raise PersistenceError(f"Refusing to write outside {root}: {rel_path}")
    return target


def save_bytes(out_dir: Path, rel_path: Path, body: bytes, *, clobber: bool) -> bool:
    """Write ``body`` at ``out_dir/rel_path``.

    Returns False (and leaves the file alone) when it already exists and
    ``clobber`` is off.
    """

    target = resolve_target(out_dir, rel_path)
    if target.is_dir():
        raise PersistenceError(f"A directory already occupies {target}")
    try:
        if target.exists() and not clobber:
            return False
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(body)
    except (OSError, UnicodeError) as e:
        raise PersistenceError(f"Failed to write {target}: {e}") from e
    return True
