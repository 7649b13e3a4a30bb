"""Tests for the command line interface."""

import pytest
import yaml

from charsheet.main import ActorFileError, load_actor_file, main

ACTOR = {
    "id": "abc123",
    "name": "Brannoc",
    "type": "character",
    "system": {
        "abilities": {
            "str": {"value": 16, "proficient": 1},
            "dex": {"value": 12},
            "con": {"value": 14, "proficient": 1},
            "int": {"value": 8},
            "wis": {"value": 10},
            "cha": {"value": 10},
        },
        "attributes": {"hp": {"value": 9, "max": 31}},
    },
    "items": [
        {
            "id": "cls1",
            "name": "Fighter",
            "type": "class",
            "system": {"levels": 3, "hit_dice": "d10", "hit_dice_used": 2},
        },
        {
            "id": "arm1",
            "name": "Chain Mail",
            "type": "equipment",
            "system": {"equipped": True, "armor": {"type": "heavy", "value": 16}},
        },
    ],
}


@pytest.fixture
def actor_file(tmp_path):
    """An actor YAML file."""
    path = tmp_path / "brannoc.yaml"
    path.write_text(yaml.safe_dump(ACTOR))
    return path


class TestLoadActorFile:
    """Test reading actor files."""

    def test_load(self, actor_file):
        """A valid file loads into a document."""
        actor = load_actor_file(actor_file)
        assert actor.name == "Brannoc"
        assert len(actor.items) == 2

    def test_missing(self, tmp_path):
        """Missing files raise ActorFileError."""
        with pytest.raises(ActorFileError, match="File not found"):
            load_actor_file(tmp_path / "nobody.yaml")

    def test_not_a_mapping(self, tmp_path):
        """The file must hold a mapping."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ActorFileError, match="mapping"):
            load_actor_file(path)

    def test_invalid_document(self, tmp_path):
        """Invalid documents raise ActorFileError."""
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"type": "dragon"}))
        with pytest.raises(ActorFileError, match="Invalid actor"):
            load_actor_file(path)


class TestMain:
    """Test the prepare and rest commands."""

    def test_prepare(self, actor_file, capsys):
        """Prepare prints the derived data."""
        assert main(["prepare", str(actor_file)]) == 0
        output = yaml.safe_load(capsys.readouterr().out)
        assert output["level"] == 3
        assert output["prof"] == 2
        assert output["hit_dice"] == 1
        assert output["ac"]["value"] == 16
        assert output["abilities"]["str"]["save"] == 5

    def test_long_rest(self, actor_file, capsys):
        """A long rest restores hit points and hit dice."""
        assert main(["rest", str(actor_file), "--long"]) == 0
        output = yaml.safe_load(capsys.readouterr().out)
        assert output["result"]["dhp"] == 22
        assert output["result"]["dhd"] == 1
        assert output["actor"]["hp"] == "31/31"

    def test_short_rest_auto_hit_dice(self, actor_file, capsys):
        """A short rest can spend the remaining hit die."""
        assert main(["rest", str(actor_file), "--auto-hd", "--seed", "7"]) == 0
        output = yaml.safe_load(capsys.readouterr().out)
        assert output["result"]["dhd"] == -1
        assert output["actor"]["hit_dice"] == 0

    def test_missing_file(self, tmp_path, capsys):
        """Errors exit with status 1."""
        assert main(["prepare", str(tmp_path / "nobody.yaml")]) == 1
        assert "error" in capsys.readouterr().err
