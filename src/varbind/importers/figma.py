"""
Figma variables importer.

Translates the Figma REST `GET /v1/files/:key/variables/local` shape into
Collections and Variables, going through the MutationAPI so imported data
gets exactly the validation an interactive edit would.

Mapping:
    resolvedType  COLOR/FLOAT/STRING/BOOLEAN -> color/number/string/boolean
    {r, g, b, a}  floats in [0, 1]            -> "#RRGGBB" (or "#RRGGBBAA")
    VARIABLE_ALIAS                            -> Alias to the imported target
    scopes        FILL_COLOR, TEXT_CONTENT... -> VariableScope

Variables are created targets-first (topological order of the alias
graph), so every alias hint already points at an existing variable.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

from ..core.exceptions import CircularReference, VarbindError
from ..core.graph import AliasGraph
from ..core.mutations import MutationAPI
from ..core.types import (
    Alias,
    UserRole,
    VariableScope,
    VariableType,
    literal_type_of,
)

logger = logging.getLogger(__name__)

FIGMA_TYPE_MAP: Dict[str, VariableType] = {
    "COLOR": VariableType.COLOR,
    "FLOAT": VariableType.NUMBER,
    "STRING": VariableType.STRING,
    "BOOLEAN": VariableType.BOOLEAN,
}

FIGMA_SCOPE_MAP: Dict[str, VariableScope] = {
    "ALL_SCOPES": VariableScope.ALL,
    "ALL_FILLS": VariableScope.FILL,
    "FRAME_FILL": VariableScope.FILL,
    "SHAPE_FILL": VariableScope.FILL,
    "TEXT_FILL": VariableScope.FILL,
    "FILL_COLOR": VariableScope.FILL,
    "EFFECT_COLOR": VariableScope.FILL,
    "STROKE_COLOR": VariableScope.STROKE,
    "TEXT_CONTENT": VariableScope.TEXT,
    "CORNER_RADIUS": VariableScope.NUMBER,
    "WIDTH_HEIGHT": VariableScope.NUMBER,
    "GAP": VariableScope.NUMBER,
    "STROKE_FLOAT": VariableScope.NUMBER,
    "OPACITY": VariableScope.NUMBER,
    "FONT_FAMILY": VariableScope.FONT,
    "FONT_STYLE": VariableScope.FONT,
    "FONT_WEIGHT": VariableScope.FONT,
    "FONT_SIZE": VariableScope.FONT,
    "LINE_HEIGHT": VariableScope.FONT,
    "LETTER_SPACING": VariableScope.FONT,
}

ALIAS_TYPE = "VARIABLE_ALIAS"


class ImportReport(BaseModel):
    """Outcome of an import: id maps from Figma ids to varbind ids, and problems."""
    collections: Dict[str, str] = Field(default_factory=dict)
    modes: Dict[str, str] = Field(default_factory=dict)
    variables: Dict[str, str] = Field(default_factory=dict)
    bindings: int = 0
    skipped: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


def figma_color_to_hex(color: Mapping[str, float]) -> str:
    """Convert a Figma `{r, g, b, a}` color (0..1 floats) to upper-case hex."""
    channels = [color["r"], color["g"], color["b"]]
    alpha = color.get("a", 1.0)
    if alpha < 1.0:
        channels.append(alpha)
    return "#" + "".join(f"{round(max(0.0, min(1.0, c)) * 255):02X}" for c in channels)


def map_figma_scopes(scopes: Optional[Iterable[str]]) -> List[VariableScope]:
    mapped = {FIGMA_SCOPE_MAP[s] for s in scopes or () if s in FIGMA_SCOPE_MAP}
    return sorted(mapped) if mapped else [VariableScope.ALL]


def _is_alias(value: Any) -> bool:
    return isinstance(value, dict) and value.get("type") == ALIAS_TYPE


def _as_list(entries: Any) -> List[dict]:
    if isinstance(entries, dict):
        return list(entries.values())
    return list(entries or [])


class FigmaVariableImporter:
    """
    Imports Figma variable collections through a MutationAPI.

    Example:
        ```python
        importer = FigmaVariableImporter(api)
        report = importer.import_payload(response.json())
        importer.import_bindings(hints, report)
        ```
    """

    def __init__(self, api: MutationAPI):
        self.api = api

    # =========================================================================
    # Payload
    # =========================================================================

    @staticmethod
    def _unpack(payload: Mapping[str, Any]) -> Tuple[List[dict], List[dict]]:
        body = payload.get("meta", payload)
        return _as_list(body.get("variableCollections")), _as_list(body.get("variables"))

    def import_payload(self, payload: Mapping[str, Any],
                       role: Optional[UserRole] = None) -> ImportReport:
        """
        Import every local collection and variable in `payload`.

        A variable that fails validation is skipped and reported; the rest
        of the import continues.
        """
        report = ImportReport()
        collections, variables = self._unpack(payload)

        for figma_collection in collections:
            if figma_collection.get("remote"):
                report.skipped.append(figma_collection["id"])
                continue
            self._import_collection(figma_collection, report, role)

        by_id = {v["id"]: v for v in variables if not v.get("remote")}
        for variable_id in self._creation_order(by_id, report):
            self._import_variable(by_id[variable_id], report, role)

        logger.info(
            "Figma import: %d collection(s), %d variable(s), %d skipped",
            len(report.collections), len(report.variables), len(report.skipped),
        )
        return report

    def _import_collection(self, data: dict, report: ImportReport,
                           role: Optional[UserRole]) -> None:
        figma_modes = data.get("modes") or [{"modeId": "default", "name": "Default"}]
        default_name = next(
            (m["name"] for m in figma_modes if m["modeId"] == data.get("defaultModeId")),
            figma_modes[0]["name"],
        )
        try:
            collection = self.api.create_collection(
                data.get("name", data["id"]),
                modes=[m["name"] for m in figma_modes],
                default_mode=default_name,
                role=role,
            )
        except VarbindError as e:
            report.skipped.append(data["id"])
            report.warn(f"Collection '{data.get('name', data['id'])}' skipped: {e.message}")
            return

        report.collections[data["id"]] = collection.id
        for figma_mode, mode in zip(figma_modes, collection.modes):
            report.modes[figma_mode["modeId"]] = mode.id

    def _creation_order(self, by_id: Dict[str, dict], report: ImportReport) -> List[str]:
        """Targets before aliasers. Variables on an alias cycle are skipped."""
        pending = dict(by_id)
        while True:
            graph = AliasGraph()
            for variable_id, data in pending.items():
                targets = [
                    v["id"] for v in data.get("valuesByMode", {}).values()
                    if _is_alias(v) and v["id"] in pending
                ]
                graph.add_variable(variable_id, targets)
            try:
                return graph.creation_order()
            except CircularReference as e:
                cycle = set(e.source_chain)
                report.warn(f"Alias cycle skipped: {' -> '.join(e.source_chain)}")
                report.skipped.extend(sorted(cycle))
                for variable_id in cycle:
                    pending.pop(variable_id, None)

    @staticmethod
    def _variable_type(data: dict) -> VariableType:
        if data.get("resolvedType") in FIGMA_TYPE_MAP:
            return FIGMA_TYPE_MAP[data["resolvedType"]]
        for value in data.get("valuesByMode", {}).values():
            if isinstance(value, dict) and "r" in value:
                return VariableType.COLOR
            inferred = literal_type_of(value)
            if inferred is not None:
                return inferred
        return VariableType.STRING

    def _import_variable(self, data: dict, report: ImportReport,
                         role: Optional[UserRole]) -> None:
        figma_id = data["id"]
        collection_id = report.collections.get(data.get("variableCollectionId"))
        if collection_id is None:
            report.skipped.append(figma_id)
            report.warn(f"Variable '{data.get('name', figma_id)}' has no imported collection")
            return

        values: Dict[str, Any] = {}
        for figma_mode_id, raw in data.get("valuesByMode", {}).items():
            mode_id = report.modes.get(figma_mode_id)
            if mode_id is None:
                report.warn(f"Variable '{figma_id}' has a value for unknown mode '{figma_mode_id}'")
                continue
            if _is_alias(raw):
                target = report.variables.get(raw["id"])
                if target is None:
                    report.warn(
                        f"Variable '{figma_id}' aliases '{raw['id']}', which was not imported"
                    )
                    continue
                values[mode_id] = Alias(variable_id=target)
            elif isinstance(raw, dict) and "r" in raw:
                values[mode_id] = figma_color_to_hex(raw)
            else:
                values[mode_id] = raw

        try:
            variable = self.api.create_variable(
                collection_id,
                data.get("name", figma_id),
                self._variable_type(data),
                values=values,
                scopes=map_figma_scopes(data.get("scopes")),
                description=data.get("description", ""),
                role=role,
            )
        except VarbindError as e:
            report.skipped.append(figma_id)
            report.warn(f"Variable '{data.get('name', figma_id)}' skipped: {e.message}")
            return
        report.variables[figma_id] = variable.id

    # =========================================================================
    # Bindings
    # =========================================================================

    def import_bindings(
        self,
        hints: Iterable[Mapping[str, Any]],
        report: ImportReport,
        role: Optional[UserRole] = None,
    ) -> ImportReport:
        """
        Create bindings from candidate hints produced by the scene import.

        Each hint is `{"node_id", "property_path", "variable_id"}` where
        `variable_id` is a Figma id (or an already-mapped varbind id), with an
        optional Figma `mode_id` pin.
        """
        for hint in hints:
            variable_id = report.variables.get(hint["variable_id"], hint["variable_id"])
            mode_override = hint.get("mode_id")
            if mode_override is not None:
                mode_override = report.modes.get(mode_override, mode_override)
            try:
                self.api.create_binding(
                    hint["node_id"], hint["property_path"], variable_id, mode_override, role
                )
            except VarbindError as e:
                report.warn(f"Binding {hint['node_id']}.{hint['property_path']} skipped: {e.message}")
                continue
            report.bindings += 1
        return report
