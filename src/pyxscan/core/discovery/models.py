"""Data models for repository trees and discovered skills.

A ``RepoTree`` is the recursive listing returned by a source-tree
provider. ``DiscoveredSkill`` is one distinct agent capability inside a
repository together with the files that make it up.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TreeEntry:
    """A single entry of a recursive repository tree listing.

    Attributes:
        path: Repository-relative POSIX path.
        type: ``"blob"`` for files, ``"tree"`` for directories.
        sha: Object id used to download the blob.
        size: Blob size in bytes (0 for directories or when unknown).
    """

    path: str
    type: str = "blob"
    sha: str = ""
    size: int = 0

    @property
    def is_blob(self) -> bool:
        return self.type == "blob"


@dataclass(frozen=True)
class RepoTree:
    """A recursive repository listing at a fixed commit.

    Attributes:
        entries: All entries returned by the provider.
        truncated: True when the provider cut the listing short.
    """

    entries: tuple[TreeEntry, ...] = ()
    truncated: bool = False

    @property
    def blobs(self) -> list[TreeEntry]:
        return [e for e in self.entries if e.is_blob]

    @property
    def blob_paths(self) -> list[str]:
        return [e.path for e in self.entries if e.is_blob]


@dataclass(frozen=True)
class DiscoveredSkill:
    """One distinct skill found inside a repository.

    Attributes:
        name: Short skill identifier (unique within the repository).
        description: Human-readable description.
        relevant_files: Paths belonging to this skill, in discovery order.
        base_path: Directory holding the skill's SKILL.md ("" for
            AI-discovered or whole-repository skills).
        skill_md_path: Path of the SKILL.md file, when one exists.
    """

    name: str
    description: str
    relevant_files: tuple[str, ...] = field(default_factory=tuple)
    base_path: str = ""
    skill_md_path: str | None = None
