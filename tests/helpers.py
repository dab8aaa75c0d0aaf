"""helpers.py - shared fixtures: small RPG Maker documents and unit builders."""

import copy
import json
import os

from mvtext.project_model import TranslatedUnit


def unit(record_id, path, translated_text, original_text="", error=None,
         source_file="data/Actors.json"):
    """TranslatedUnit with only the fields a test cares about."""
    return TranslatedUnit(
        record_id=record_id,
        original_text=original_text,
        translated_text=translated_text,
        source_file=source_file,
        path=path,
        origin="test",
        error=error,
    )


def cmd(code, *parameters, indent=0):
    return {"code": code, "indent": indent, "parameters": list(parameters)}


ACTORS = [
    None,
    {"id": 1, "name": "ハロルド", "nickname": "", "profile": "勇者の末裔。",
     "note": "", "classId": 1},
    {"id": 2, "name": "テレーゼ", "nickname": "魔女", "profile": "   ",
     "note": "<tag>", "classId": 2},
]

CLASSES = [
    None,
    {"id": 1, "name": "勇者", "note": "",
     "learnings": [{"level": 1, "note": "最初の技", "skillId": 3},
                   {"level": 5, "note": "", "skillId": 4}]},
]

COMMON_EVENTS = [
    None,
    {"id": 1, "name": "宿屋", "trigger": 0, "list": [
        cmd(101, "Actor1", 0, 0, 2, "女将"),
        cmd(401, "いらっしゃい！"),
        cmd(102, ["泊まる", "", "やめる"], 1, 0, 2, 0),
        cmd(402, 0, "泊まる"),
        cmd(355, "$gameParty.gainGold(-10)"),
        cmd(0),
    ]},
]

TROOPS = [
    None,
    {"id": 1, "name": "スライム*2", "members": [], "pages": [
        {"conditions": {}, "span": 0, "list": [cmd(401, "スライムが現れた！"), cmd(0)]},
        {"conditions": {}, "span": 0, "list": [cmd(0)]},
    ]},
]

MAP = {
    "displayName": "はじまりの村",
    "width": 17,
    "events": [
        None,
        {"id": 1, "name": "村人", "x": 3, "y": 4, "pages": [
            {"list": [cmd(401, "こんにちは。"), cmd(0)]},
            {"list": [cmd(105, 2, False), cmd(405, "昔々……"), cmd(0)]},
        ]},
    ],
}

SYSTEM = {
    "gameTitle": "勇者の旅",
    "currencyUnit": "G",
    "elements": ["", "炎", "氷"],
    "switches": ["", "扉が開いた"],
    "terms": {
        "basic": ["レベル", "Lv"],
        "commands": ["戦う", None],
        "params": ["最大HP"],
        "messages": {"actorDamage": "%1は %2 のダメージを受けた！", "levelUp": ""},
    },
}


def fresh(document):
    """Deep copy of a fixture so a test may mutate it."""
    return copy.deepcopy(document)


def make_project(root, files, www=False):
    """Write *files* ({name: document}) into a data folder under *root*.

    A str or bytes document is written as-is. Returns the data folder path.
    """
    data_dir = os.path.join(root, "www", "data") if www else os.path.join(root, "data")
    os.makedirs(data_dir, exist_ok=True)
    for name, document in files.items():
        path = os.path.join(data_dir, name)
        if isinstance(document, bytes):
            with open(path, "wb") as f:
                f.write(document)
            continue
        with open(path, "w", encoding="utf-8") as f:
            if isinstance(document, str):
                f.write(document)
            else:
                json.dump(document, f, ensure_ascii=False)
    return data_dir


def read_json(path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
