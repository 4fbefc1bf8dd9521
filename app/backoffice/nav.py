"""
Navigation for admin pages.
"""
from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from app.backoffice.rbac import Authorization


class NavAdmin:
    def __init__(self, config: Mapping[str, Any]):
        admin_dir = str(config["ADMIN_DIR"]).strip("/")
        self._sections: dict[str, dict[str, Any]] = {
            "Admins": {
                "link": f"/{admin_dir}/admins",
                "authorization": "admins.index",
                "sub_sections": {
                    "Insert": {
                        "link": f"/{admin_dir}/admins/insert",
                        "authorization": "admins.insert",
                    },
                },
            },
        }

    @property
    def sections(self) -> dict[str, dict[str, Any]]:
        return copy.deepcopy(self._sections)

    def permitted_sections(self, authorization: Authorization) -> dict[str, dict[str, Any]]:
        """Sections (and sub-sections) the current admin may open."""
        out: dict[str, dict[str, Any]] = {}
        for title, section in self.sections.items():
            if not authorization.check(section["authorization"]):
                continue
            section["sub_sections"] = {
                sub_title: sub
                for sub_title, sub in section.get("sub_sections", {}).items()
                if authorization.check(sub["authorization"])
            }
            out[title] = section
        return out
