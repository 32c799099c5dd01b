"""Tests for prdgen.repo_scanner."""

from __future__ import annotations

from pathlib import Path

import pytest

from prdgen.repo_scanner import RepoScanner, is_api_file, is_model_file, is_screen


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_scan_classifies_screens_api_and_model_files(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()

    _write(repo_root / "src" / "pages" / "Dashboard.tsx", "export default () => null;\n")
    _write(repo_root / "src" / "app" / "settings" / "page.tsx", "export default () => null;\n")
    _write(repo_root / "src" / "components" / "UserCard.tsx", "export const UserCard = () => null;\n")
    _write(repo_root / "src" / "api" / "users" / "route.ts", "export async function GET() {}\n")
    _write(repo_root / "server" / "routes" / "orders.js", "router.get('/orders', list);\n")
    _write(repo_root / "prisma" / "schema.prisma", "model User {\n  id Int @id\n}\n")
    _write(repo_root / "src" / "models" / "invoice.ts", "export interface Invoice { id: string }\n")
    _write(repo_root / "README.md", "# Demo\n")

    result = RepoScanner().scan(str(repo_root))

    assert result.root == str(repo_root.resolve())
    assert result.screens == [
        "src/app/settings/page.tsx",
        "src/components/UserCard.tsx",
        "src/pages/Dashboard.tsx",
    ]
    assert result.api_files == ["server/routes/orders.js", "src/api/users/route.ts"]
    assert "prisma/schema.prisma" in result.model_files
    assert "src/models/invoice.ts" in result.model_files
    assert "README.md" in result.all_files


def test_scan_skips_dependency_build_and_hidden_directories(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()

    _write(repo_root / "src" / "pages" / "Home.tsx", "export default () => null;\n")
    _write(repo_root / "node_modules" / "react" / "index.js", "module.exports = {};\n")
    _write(repo_root / "dist" / "bundle.js", "\n")
    _write(repo_root / ".next" / "server" / "pages" / "Home.js", "\n")
    _write(repo_root / ".git" / "HEAD", "ref: refs/heads/main\n")

    result = RepoScanner().scan(repo_root)

    assert result.all_files == ["src/pages/Home.tsx"]
    assert result.screens == ["src/pages/Home.tsx"]


def test_scan_respects_gitignore_and_config_excludes(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()

    _write(repo_root / ".gitignore", "generated/\n*.log\n!keep.log\n")
    _write(repo_root / ".prdgen.yml", "exclude_paths:\n  - legacy/\n")
    _write(repo_root / "src" / "pages" / "Home.tsx", "export default () => null;\n")
    _write(repo_root / "generated" / "pages" / "Old.tsx", "\n")
    _write(repo_root / "legacy" / "pages" / "Older.tsx", "\n")
    _write(repo_root / "debug.log", "noise\n")
    _write(repo_root / "keep.log", "signal\n")

    paths = set(RepoScanner().scan(repo_root).all_files)

    assert "src/pages/Home.tsx" in paths
    assert "generated/pages/Old.tsx" not in paths
    assert "legacy/pages/Older.tsx" not in paths
    assert "debug.log" not in paths
    assert "keep.log" in paths


def test_scan_rejects_missing_directory(tmp_path: Path) -> None:
    missing = tmp_path / "missing"
    with pytest.raises(FileNotFoundError) as excinfo:
        RepoScanner().scan(str(missing))
    assert str(missing) in str(excinfo.value)


def test_scan_rejects_file_path(tmp_path: Path) -> None:
    target = tmp_path / "archive.zip"
    target.write_bytes(b"PK")
    with pytest.raises(NotADirectoryError):
        RepoScanner().scan(target)


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("src/pages/Dashboard.tsx", True),
        ("app/orders/page.tsx", True),
        ("src/screens/ProfileScreen.tsx", True),
        ("src/components/CheckoutForm.tsx", True),
        ("src/components/ui/button.tsx", False),
        ("src/components/Button.tsx", False),
        ("src/components/useAuth.tsx", False),
        ("src/components/index.tsx", False),
        ("src/pages/api/users.ts", False),
        ("src/lib/format.ts", False),
        ("src/pages/notes.md", False),
    ],
)
def test_is_screen(path: str, expected: bool) -> None:
    assert is_screen(path) is expected


def test_api_and_model_classifiers() -> None:
    assert is_api_file("app/api/users/route.ts")
    assert is_api_file("server/routes/users.js")
    assert is_api_file("src/api.ts")
    assert not is_api_file("src/apiHelpers.ts")

    assert is_model_file("prisma/schema.prisma")
    assert is_model_file("src/models/user.ts")
    assert is_model_file("src/model.ts")
    assert is_model_file("src/schemas/order.ts")
    assert not is_model_file("src/pages/Models.tsx")
