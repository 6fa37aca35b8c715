"""
Data structures for nodes of the remote content tree.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class NodeType(str, Enum):
    """Kinds of node the synchronizer distinguishes."""

    CONTAINER = "container"
    FILE = "file"
    SPECIAL = "special"  # Embedded content fetched through load_special_content
    OTHER = "other"


class FavoriteState(Enum):
    """Favorite status of a node as shown to the user."""

    NONE = 0
    FAVORITE = 1
    SYNCING = 2


@dataclass
class User:
    user_id: int
    name: str = ""


@dataclass
class ContentNode:
    """One item in the remote content tree."""

    obj_id: str
    ref_id: str
    title: str
    type: NodeType = NodeType.CONTAINER
    parent_ref_id: Optional[str] = None
    needs_download: bool = True
    is_favorite: bool = False
    is_offline_available: bool = False
    file_size: int = 0
    file_name: str = ""
    download_url: str = ""
    last_modified: Optional[datetime] = None
    data: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_file(self) -> bool:
        return self.type == NodeType.FILE

    @property
    def is_special(self) -> bool:
        return self.type == NodeType.SPECIAL

    @property
    def is_container(self) -> bool:
        return self.type == NodeType.CONTAINER

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ContentNode":
        """
        Builds a node from a JSON object returned by the content API.

        Unknown type strings become OTHER unless the payload flags the item
        as a container.
        """
        raw_type = str(payload.get("type", "")).lower()
        try:
            node_type = NodeType(raw_type)
        except ValueError:
            node_type = (
                NodeType.CONTAINER if payload.get("is_container") else NodeType.OTHER
            )

        file_info = payload.get("file") or {}
        modified = payload.get("last_modified")
        return cls(
            obj_id=str(payload["obj_id"]),
            ref_id=str(payload.get("ref_id", payload["obj_id"])),
            title=payload.get("title", "Untitled"),
            type=node_type,
            parent_ref_id=(
                str(payload["parent_ref_id"])
                if payload.get("parent_ref_id") is not None
                else None
            ),
            file_size=int(file_info.get("size", 0) or 0),
            file_name=file_info.get("name", ""),
            download_url=file_info.get("url", ""),
            last_modified=datetime.fromisoformat(modified) if modified else None,
            data=payload,
        )
