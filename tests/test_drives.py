"""Tests for volume usage lookups."""

from __future__ import annotations

from collections import namedtuple

from folderlens import drives

Usage = namedtuple("Usage", "total used free percent")


def test_volume_usage_real_path(tmp_path):
    u = drives.volume_usage(str(tmp_path))
    assert u is not None
    assert u["total"] >= u["used"] >= 0


def test_share_of_volume(monkeypatch):
    monkeypatch.setattr(drives.psutil, "disk_usage", lambda p: Usage(1000, 400, 600, 40.0))
    assert drives.share_of_volume(100, "/anywhere") == 25.0


def test_share_of_volume_unknown(monkeypatch):
    def boom(p):
        raise FileNotFoundError(2, "No such file or directory", p)

    monkeypatch.setattr(drives.psutil, "disk_usage", boom)
    assert drives.volume_usage("/gone") is None
    assert drives.share_of_volume(100, "/gone") is None


def test_share_of_empty_volume(monkeypatch):
    monkeypatch.setattr(drives.psutil, "disk_usage", lambda p: Usage(1000, 0, 1000, 0.0))
    assert drives.share_of_volume(100, "/anywhere") is None
