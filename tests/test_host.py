# tests/test_host.py
"""
Worker-side protocol handling: sentinels, pack mounting, integrity checks,
entrypoint fallbacks and the apply_join round trip.
"""
from pathlib import Path
from unittest.mock import patch

import pytest

from morphkit.core.domain.exceptions import EngineLoadFailed
from morphkit.workers.host import TransducerHost
from tests.conftest import FakeEngine, sha256_of

ANALYSER = b"fake optimized-lookup analyser"
GENERATOR = b"fake optimized-lookup generator"


def _mounted(host):
    return sorted(p.name for p in host.mount_dir.iterdir())


class TestSentinels:
    def test_apply_up_before_init_reports_engine_not_loaded(self, host):
        assert host.apply_up("chats") == ["HFST_ENGINE_NOT_LOADED:chats"]

    def test_apply_up_before_pack_reports_transducer_not_loaded(self, host):
        host.init("")
        assert host.apply_up("chats") == ["HFST_TRANSDUCER_NOT_LOADED:chats"]
        assert host.apply_down("chat+N+Pl") == ["HFST_TRANSDUCER_NOT_LOADED:chat+N+Pl"]

    def test_engine_fault_becomes_error_sentinel(self, host, fake_engine, pack_file):
        path = pack_file("fr.hfstol", ANALYSER)
        host.handle({"type": "init", "engine_url": "", "pack_url": str(path)})
        fake_engine.fail_with = RuntimeError("segfault-ish")

        assert host.apply_up("chats") == ["HFST_ENGINE_ERROR:chats"]


class TestPackLoading:
    def test_verified_gzip_pack_is_mounted_and_loaded(self, host, fake_engine, pack_file):
        path = pack_file("fr.hfstol.gz", ANALYSER, compress=True)
        url = f"{path}?sha256={sha256_of(path.read_bytes())}"

        reply = host.handle({"type": "load_pack", "pack_url": url})

        assert reply == {"type": "ready"}
        assert host.transducer_loaded is True
        mounted = host.mount_dir / "analysis.hfstol"
        assert mounted.read_bytes() == ANALYSER
        assert fake_engine.loader_calls == [("loadTransducer", str(mounted))]

    def test_pmhfst_suffix_selects_mount_name(self, host, pack_file):
        path = pack_file("fr.pmhfst", ANALYSER)
        host.load_pack(str(path))
        assert _mounted(host) == ["analysis.pmhfst"]

    def test_file_url_is_accepted(self, host, pack_file):
        path = pack_file("fr.hfstol", ANALYSER)
        host.load_pack(path.as_uri())
        assert host.transducer_loaded is True

    def test_wrong_checksum_leaves_transducer_unloaded_and_mounts_nothing(self, host, fake_engine, pack_file):
        path = pack_file("fr.hfstol", ANALYSER)
        url = f"{path}?sha256={'0' * 64}"

        reply = host.handle({"type": "load_pack", "pack_url": url})

        assert reply == {"type": "ready"}
        assert host.transducer_loaded is False
        assert _mounted(host) == []
        assert fake_engine.loader_calls == []
        assert host.handle({"type": "apply_up", "input": "chats"}) == {
            "type": "up",
            "outputs": ["HFST_TRANSDUCER_NOT_LOADED:chats"],
        }

    def test_unwritable_mount_keeps_reply_ready(self, host, fake_engine, pack_file):
        path = pack_file("fr.hfstol", ANALYSER)
        host.init("")

        with patch.object(Path, "write_bytes", side_effect=OSError("read-only file system")):
            reply = host.handle({"type": "load_pack", "pack_url": str(path)})

        assert reply == {"type": "ready"}
        assert host.transducer_loaded is False
        assert fake_engine.loader_calls == []

    def test_checksum_comparison_ignores_case(self, host, pack_file):
        path = pack_file("fr.hfstol", ANALYSER)
        host.load_pack(f"{path}?sha256={sha256_of(ANALYSER).upper()}")
        assert host.transducer_loaded is True

    def test_missing_pack_file_keeps_reply_ready(self, host, tmp_path):
        reply = host.handle({"type": "load_pack", "pack_url": str(tmp_path / "nope.hfstol")})
        assert reply == {"type": "ready"}
        assert host.transducer_loaded is False

    def test_load_pack_before_init_initialises_engine_first(self, host, pack_file):
        path = pack_file("fr.hfstol", ANALYSER)
        host.load_pack(str(path))
        assert host.ready is True
        assert host.transducer_loaded is True

    def test_alternate_entrypoints_are_tried_in_order(self, tmp_path, pack_file):
        engine = FakeEngine(loader_codes={"loadTransducer": 3, "load_transducer": 1, "hfst_load": 0})
        host = TransducerHost(engine_factory=lambda p: engine, mount_dir=str(tmp_path / "mnt"))
        path = pack_file("fr.hfstol", ANALYSER)

        host.load_pack(str(path))

        assert [name for name, _ in engine.loader_calls] == ["loadTransducer", "load_transducer", "hfst_load"]
        assert host.transducer_loaded is True

    def test_missing_entrypoints_are_skipped(self, tmp_path, pack_file):
        engine = FakeEngine(loader_codes={"load_transducer": 0})
        host = TransducerHost(engine_factory=lambda p: engine, mount_dir=str(tmp_path / "mnt"))

        host.load_pack(str(pack_file("fr.hfstol", ANALYSER)))

        assert [name for name, _ in engine.loader_calls] == ["load_transducer"]
        assert host.transducer_loaded is True

    def test_all_entrypoints_failing_leaves_flag_down(self, tmp_path, pack_file):
        engine = FakeEngine(loader_codes={"loadTransducer": 1})
        host = TransducerHost(engine_factory=lambda p: engine, mount_dir=str(tmp_path / "mnt"))

        reply = host.handle({"type": "load_pack", "pack_url": str(pack_file("fr.hfstol", ANALYSER))})

        assert reply == {"type": "ready"}
        assert host.transducer_loaded is False


class TestGenerationResource:
    def test_generator_is_loaded_from_relative_gen_param(self, host, fake_engine, pack_file):
        analyser = pack_file("fr.hfstol", ANALYSER)
        pack_file("fr-gen.hfstol", GENERATOR)
        url = f"{analyser}?gen=fr-gen.hfstol&gensha256={sha256_of(GENERATOR)}"

        host.load_pack(url)

        assert host.transducer_loaded is True
        assert host.generator_loaded is True
        assert (host.mount_dir / "generate.hfstol").read_bytes() == GENERATOR
        assert [name for name, _ in fake_engine.loader_calls] == ["loadTransducer", "loadGenerator"]

    def test_generator_failure_does_not_affect_primary(self, host, pack_file):
        analyser = pack_file("fr.hfstol", ANALYSER)
        pack_file("fr-gen.hfstol", GENERATOR)
        url = f"{analyser}?sha256={sha256_of(ANALYSER)}&gen=fr-gen.hfstol&gensha256={'f' * 64}"

        host.load_pack(url)

        assert host.transducer_loaded is True
        assert host.generator_loaded is False
        assert _mounted(host) == ["analysis.hfstol"]


class TestApply:
    @pytest.fixture
    def loaded(self, host, pack_file):
        host.load_pack(str(pack_file("fr.hfstol", ANALYSER)))
        return host

    def test_apply_up_splits_lines_and_drops_empty(self, loaded, fake_engine):
        fake_engine.up["est"] = "être+V+Prs+3Sg\n\nest+N+Sg\n"
        assert loaded.apply_up("est") == ["être+V+Prs+3Sg", "est+N+Sg"]

    def test_buffer_is_released_after_each_call(self, loaded, fake_engine):
        loaded.apply_up("chats")
        assert fake_engine.allocated == [len("chat+N+Pl\n".encode()) + 1]
        assert fake_engine.released == 1

    def test_probe_without_result_returns_empty(self, loaded, fake_engine):
        assert loaded.apply_up("xyzzy") == []
        assert fake_engine.allocated == []

    def test_apply_down_strips_internal_whitespace(self, loaded):
        assert loaded.handle({"type": "apply_down", "input": "chat+N+Pl"}) == {
            "type": "down",
            "outputs": ["chats"],
        }


class TestDispatch:
    def test_init_replies_ready(self, host):
        assert host.handle({"type": "init", "engine_url": ""}) == {"type": "ready"}
        assert host.ready is True

    def test_unknown_message_type(self, host):
        assert host.handle({"type": "explode"}) == {"type": "error", "message": "unknown message"}

    def test_non_dict_message(self, host):
        assert host.handle("apply_up") == {"type": "error", "message": "unknown message"}

    def test_malformed_message_is_an_error_reply(self, host):
        reply = host.handle({"type": "apply_up"})
        assert reply["type"] == "error"
        assert "apply_up" in reply["message"]

    def test_engine_library_failure_is_an_error_reply(self, tmp_path):
        def _factory(path):
            raise EngineLoadFailed(f"Cannot load engine library {path}")

        host = TransducerHost(engine_factory=_factory, mount_dir=str(tmp_path / "mnt"))
        reply = host.handle({"type": "init", "engine_url": "/missing/libhfst.so"})

        assert reply == {"type": "error", "message": "Cannot load engine library /missing/libhfst.so"}
        assert host.ready is False

    def test_apply_join_replies_with_primitive_decision(self, host):
        reply = host.handle({"type": "apply_join", "prev": "je", "next": "aime", "lang": "fr-FR"})

        assert reply["type"] == "join"
        decision = reply["decision"]
        assert decision["surfacePrev"] == "j’"
        assert decision["surfaceNext"] == "aime"
        assert decision["joiner"] == ""
        assert decision["noSpace"] is True
        assert all(isinstance(v, (str, bool)) for v in decision.values())

    def test_apply_join_uses_engine_features(self, host, fake_engine, pack_file):
        fake_engine.up["le"] = "le\tle<det><def><m><sg>\t0.0"
        fake_engine.up["arbre"] = "arbre\tarbre<n><m><sg>\t0.0"
        host.load_pack(str(pack_file("fr.hfstol", ANALYSER)))

        reply = host.handle({"type": "apply_join", "prev": "le", "next": "arbre", "lang": "fr-FR"})

        assert reply["decision"]["surfacePrev"] == "l’"
        assert reply["decision"]["reason"].startswith("French elision (morphological features)")

    def test_close_unloads_engine(self, host, fake_engine):
        host.init("")
        host.close()
        assert fake_engine.unloaded is True
        assert host.ready is False
