from __future__ import annotations

import ast
from pathlib import Path


def _psr_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _sources() -> list[Path]:
    root = _psr_root()
    files: list[Path] = []
    for path in sorted(root.rglob("*.py")):
        rel = path.relative_to(root)
        if rel.parts[0] == "test" or "__pycache__" in rel.parts:
            continue
        files.append(path)
    return files


def _imports(path: Path) -> list[tuple[str, int]]:
    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    found: list[tuple[str, int]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            found.extend((alias.name, node.lineno) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module and not node.level:
            found.append((node.module, node.lineno))
    return found


def _matches(module: str, prefix: str) -> bool:
    return module == prefix or module.startswith(prefix + ".")


def test_services_do_not_import_cli() -> None:
    root = _psr_root()
    offenders = [
        f"{path.relative_to(root)}:{line}: {module}"
        for path in _sources()
        if path.relative_to(root).parts[0] == "services"
        for module, line in _imports(path)
        if _matches(module, "psr.cli")
    ]
    assert not offenders, "services -> cli imports:\n" + "\n".join(offenders)


def test_subprocess_only_in_platform_process() -> None:
    root = _psr_root()
    offenders = [
        f"{path.relative_to(root)}:{line}"
        for path in _sources()
        if str(path.relative_to(root).as_posix()) != "platform/process.py"
        for module, line in _imports(path)
        if module == "subprocess"
    ]
    assert not offenders, "direct subprocess imports:\n" + "\n".join(offenders)


def test_rich_only_in_console() -> None:
    root = _psr_root()
    offenders = [
        f"{path.relative_to(root)}:{line}: {module}"
        for path in _sources()
        if str(path.relative_to(root).as_posix()) != "output/console.py"
        for module, line in _imports(path)
        if _matches(module, "rich")
    ]
    assert not offenders, "direct rich imports:\n" + "\n".join(offenders)


def test_credential_crypto_stays_in_credential_module() -> None:
    root = _psr_root()
    offenders = [
        f"{path.relative_to(root)}:{line}: {module}"
        for path in _sources()
        if str(path.relative_to(root).as_posix()) != "services/release/credential.py"
        for module, line in _imports(path)
        if _matches(module, "cryptography")
    ]
    assert not offenders, "cryptography imports:\n" + "\n".join(offenders)
