"""Unit tests for the library registry."""

import logging
import threading

import pytest

from libgraph.registry import (
    ArtifactPaths,
    DuplicateRegistrationError,
    RegistrationPolicy,
    Registry,
    UnknownDependencyError,
    canonicalize,
    visible_units,
)


class TestCanonicalize:
    """Path canonicalization used for source roots."""

    def test_relative_against_base_dir(self, tmp_path):
        assert canonicalize("mods/a", tmp_path) == (tmp_path / "mods" / "a").resolve()

    def test_resolves_symlinks(self, tmp_path):
        real = tmp_path / "real"
        real.mkdir()
        link = tmp_path / "link"
        link.symlink_to(real, target_is_directory=True)
        assert canonicalize(link) == real.resolve()

    def test_dot_segments_collapse(self, tmp_path):
        assert canonicalize(tmp_path / "a" / ".." / "b") == (tmp_path / "b").resolve()


class TestRegister:
    """Registration semantics."""

    def test_register_and_lookup(self, registry, tmp_path):
        unit = registry.register("Util", tmp_path / "util", ["Core"])
        assert registry.lookup("Util") == unit
        assert unit.source_root == (tmp_path / "util").resolve()
        assert unit.dependencies == ("Core",)
        assert unit.artifacts is None

    def test_lookup_missing_returns_none(self, registry):
        assert registry.lookup("Nope") is None

    def test_get_missing_raises(self, registry):
        with pytest.raises(UnknownDependencyError, match="Unknown library 'Nope'"):
            registry.get("Nope")

    def test_empty_name_rejected(self, registry, tmp_path):
        with pytest.raises(ValueError):
            registry.register("", tmp_path)

    def test_duplicate_dependencies_collapse(self, registry, tmp_path):
        unit = registry.register("A", tmp_path, ["B", "C", "B"])
        assert unit.dependencies == ("B", "C")

    def test_same_root_is_idempotent(self, registry, tmp_path):
        registry.register("A", tmp_path / "a", ["B"])
        unit = registry.register("A", tmp_path / "a" / ".", ["B", "C"])
        assert len(registry) == 1
        assert unit.dependencies == ("B", "C")

    def test_same_root_keeps_recorded_artifacts(self, registry, layout, build, tmp_path):
        """A re-registration without artifacts leaves the compiler's report in place."""
        root = tmp_path / "mods" / "lib"
        root.mkdir(parents=True)
        registry.register("Lib", root)
        build("Lib")
        registry.record_artifacts("Lib", layout.for_unit("Lib"))
        assert visible_units(registry, [tmp_path / "mods"]) == ["Lib"]

        unit = registry.register("Lib", root, ["Dep"])

        assert unit.artifacts == layout.for_unit("Lib")
        assert unit.dependencies == ("Dep",)
        assert visible_units(registry, [tmp_path / "mods"]) == ["Lib"]

    def test_same_root_new_artifacts_replace(self, registry, tmp_path):
        first = ArtifactPaths(tmp_path / "a" / "A.o", tmp_path / "a" / "A.swiftmodule")
        second = ArtifactPaths(tmp_path / "b" / "A.o", tmp_path / "b" / "A.swiftmodule")
        registry.register("A", tmp_path, artifacts=first)
        assert registry.register("A", tmp_path, artifacts=second).artifacts == second

    def test_conflicting_root_strict(self, registry, tmp_path):
        registry.register("A", tmp_path / "one")
        with pytest.raises(DuplicateRegistrationError) as exc_info:
            registry.register("A", tmp_path / "two")

        assert exc_info.value.existing_root == (tmp_path / "one").resolve()
        assert exc_info.value.new_root == (tmp_path / "two").resolve()
        assert registry.get("A").source_root == (tmp_path / "one").resolve()

    def test_conflicting_root_last_write_wins(self, tmp_path, caplog):
        registry = Registry(policy=RegistrationPolicy.LAST_WRITE_WINS)
        registry.register("A", tmp_path / "one")
        with caplog.at_level(logging.WARNING, logger="libgraph.registry.registry"):
            registry.register("A", tmp_path / "two")

        assert registry.get("A").source_root == (tmp_path / "two").resolve()
        assert "Overwriting library A" in caplog.text

    def test_logs_registration(self, registry, tmp_path, caplog):
        with caplog.at_level(logging.INFO, logger="libgraph.registry.registry"):
            registry.register("A", tmp_path)
        assert "Registered library: A" in caplog.text


class TestRegistryViews:
    """Snapshots, iteration and serialization."""

    def test_registration_order_kept(self, registry, tmp_path):
        for name in ["C", "A", "B"]:
            registry.register(name, tmp_path / name)
        assert registry.all_names() == ["C", "A", "B"]
        assert [u.name for u in registry] == ["C", "A", "B"]

    def test_contains(self, registry, tmp_path):
        registry.register("A", tmp_path)
        assert "A" in registry
        assert "B" not in registry

    def test_units_is_snapshot(self, registry, tmp_path):
        registry.register("A", tmp_path / "a")
        snapshot = registry.units()
        registry.register("B", tmp_path / "b")
        assert [u.name for u in snapshot] == ["A"]

    def test_record_artifacts(self, registry, tmp_path):
        registry.register("A", tmp_path, ["B"])
        artifacts = ArtifactPaths(tmp_path / "A.o", tmp_path / "A.swiftmodule")
        updated = registry.record_artifacts("A", artifacts)
        assert updated.artifacts == artifacts
        assert updated.dependencies == ("B",)
        assert registry.get("A").artifacts == artifacts

    def test_record_artifacts_unknown(self, registry, tmp_path):
        with pytest.raises(UnknownDependencyError):
            registry.record_artifacts("A", ArtifactPaths(tmp_path / "A.o", tmp_path / "A.swiftmodule"))

    def test_to_dict(self, registry, tmp_path):
        registry.register("A", tmp_path)
        data = registry.to_dict()
        assert data["policy"] == "strict"
        assert data["units"]["A"]["name"] == "A"


class TestConcurrentRegistration:
    """Registry behavior with several configuring threads."""

    def test_parallel_registrations_all_land(self, registry, tmp_path):
        errors: list[Exception] = []

        def worker(index: int) -> None:
            try:
                for j in range(20):
                    registry.register(f"Lib{index}_{j}", tmp_path / f"lib{index}_{j}")
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(registry) == 160

    def test_parallel_conflicts_keep_one_root(self, registry, tmp_path):
        """Only one of several conflicting registrations wins under STRICT."""
        results: list[str] = []
        lock = threading.Lock()

        def worker(index: int) -> None:
            try:
                registry.register("Shared", tmp_path / f"root{index}")
                outcome = "ok"
            except DuplicateRegistrationError:
                outcome = "dup"
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("ok") == 1
        assert results.count("dup") == 5
