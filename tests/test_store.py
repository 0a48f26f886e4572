"""
Test Dynamic Rule Store Module
==============================

Unit tests for the runtime-editable action file.
"""

import pytest
import yaml
from pathlib import Path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.exceptions import PersistenceError
from rules.store import DynamicRuleStore
from conftest import make_message


class TestDynamicRuleStore:
    """Tests for DynamicRuleStore."""

    @pytest.fixture
    def store(self, tmp_path):
        return DynamicRuleStore(tmp_path / "dynamic.yaml")

    def test_missing_file_is_empty(self, store):
        """Test a store without file reads as empty."""
        actions = store.read()
        assert actions.include == []
        assert actions.on_message == []
        assert len(store.load_rules()) == 0

    def test_add_persists(self, store):
        """Test added actions are written and reloadable."""
        store.add("Hi there", "hello")

        data = yaml.safe_load(store.path.read_text(encoding="utf-8"))
        assert data["on_message"] == [{"contains": "hello", "response": "Hi there"}]

        rules = store.load_rules()
        assert rules.handle(None, make_message("hello bot")) == "Hi there"

    def test_add_keeps_order(self, store):
        store.add("one", "a")
        store.add("two", "b")
        assert [d.response for d in store.read().on_message] == ["one", "two"]

    def test_no_temp_files_left(self, store, tmp_path):
        store.add("x", "y")
        assert [p.name for p in tmp_path.iterdir()] == ["dynamic.yaml"]

    def test_remove_counts(self, store):
        """Test every action with the trigger is removed."""
        store.add("first", "hello")
        store.add("second", "hello")
        store.add("other", "bye")

        assert store.remove("hello") == 2
        assert [d.contains for d in store.read().on_message] == ["bye"]
        assert store.remove("hello") == 0

    def test_remove_without_file(self, store):
        """Test removing from an empty store writes nothing."""
        assert store.remove("hello") == 0
        assert not store.path.exists()

    def test_remove_ignores_includes(self, store, tmp_path):
        """Test only the store's own actions are removed."""
        (tmp_path / "extra.yaml").write_text(
            "on_message:\n  - contains: hello\n    response: included\n", encoding="utf-8"
        )
        store.path.write_text("include:\n  - extra.yaml\n", encoding="utf-8")

        assert store.remove("hello") == 0
        assert store.load_rules().handle(None, make_message("hello")) == "included"

    def test_unreadable_store(self, tmp_path):
        """Test a store path that cannot be read."""
        store = DynamicRuleStore(tmp_path)
        with pytest.raises(PersistenceError):
            store.read()

    def test_invalid_store_blocks_updates(self, store):
        """Test a broken file is not overwritten by add."""
        store.path.write_text("on_message: [unclosed\n", encoding="utf-8")
        with pytest.raises(PersistenceError):
            store.add("x", "y")
        assert store.path.read_text(encoding="utf-8") == "on_message: [unclosed\n"
