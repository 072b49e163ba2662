"""Lookup of domain and class names by their numeric ids."""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Tuple

DEFAULT_CLASS_NAME = "default"


class DomainClassIndex:
    """Read-only snapshot of the `domain` and `class` tables for one report run.

    Every known domain resolves class id 0 (or NULL) to "default", whether or not the database carries a row
    for it. Ids missing from the snapshot resolve to their numeric string so rows are never dropped.
    """

    def __init__(self, domains: Dict[int, str], classes: Dict[Tuple[int, int], str]) -> None:
        self._domains = dict(domains)
        self._classes = dict(classes)
        for dmid in self._domains:
            self._classes[(dmid, 0)] = DEFAULT_CLASS_NAME

    @classmethod
    def from_rows(
        cls, rows: Iterable[Tuple[int, str, Optional[int], Optional[str]]]
    ) -> "DomainClassIndex":
        """Build from `(dmid, namespace, classid, classname)` rows of `domain LEFT JOIN class`."""

        domains: Dict[int, str] = {}
        classes: Dict[Tuple[int, int], str] = {}
        for dmid, namespace, classid, classname in rows:
            domains[int(dmid)] = str(namespace)
            if classid is not None and classname is not None:
                classes[(int(dmid), int(classid))] = str(classname)
        return cls(domains, classes)

    @property
    def domains(self) -> Dict[int, str]:
        return dict(self._domains)

    def domain_name(self, dmid: Optional[int]) -> str:
        if dmid is None:
            return ""
        return self._domains.get(int(dmid), str(dmid))

    def class_name(self, dmid: Optional[int], classid: Optional[int]) -> str:
        if not classid:
            return DEFAULT_CLASS_NAME
        if dmid is None:
            return str(classid)
        return self._classes.get((int(dmid), int(classid)), str(classid))

    def resolve(self, dmid: Optional[int], classid: Optional[int]) -> Tuple[str, str]:
        return self.domain_name(dmid), self.class_name(dmid, classid)
