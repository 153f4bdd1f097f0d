from __future__ import annotations

import hashlib
import logging
import random
from collections import OrderedDict
from typing import Any

from precast_erp.core.errors import ValidationFailedError
from precast_erp.db.base import utcnow

logger = logging.getLogger(__name__)

# File extension -> CAD system.
CAD_SYSTEMS = {
    ".dwg": "AutoCAD",
    ".dxf": "AutoCAD",
    ".rvt": "Revit",
    ".ifc": "IFC",
    ".skp": "SketchUp",
    ".tekla": "Tekla",
}
EXPORT_FORMATS = ("dwg", "dxf", "ifc", "pdf")

ELEMENT_TYPES = {
    "AutoCAD": ("Line", "Polyline", "Arc", "Dimension", "Text"),
    "Revit": ("Wall", "Floor", "Column", "Beam", "Door", "Window"),
    "IFC": ("IfcBeam", "IfcColumn", "IfcSlab", "IfcWall", "IfcPlate"),
    "SketchUp": ("Group", "Component", "Face"),
    "Tekla": ("Beam", "Column", "Hollow Core Slab", "Double Tee", "Wall Panel", "Embed Plate"),
}
MATERIALS = ("Concrete", "Steel", "Rebar", "Strand", "Grout")


def file_extension(file_name: str) -> str:
    name = file_name.rsplit("/", 1)[-1]
    return f".{name.rsplit('.', 1)[-1].lower()}" if "." in name else ""


class CADIntegrationService:
    """
    Exchange of model data with CAD systems.

    No CAD system is contacted: elements are derived from the file name with a
    seeded generator, so importing the same file twice yields the same elements.
    """

    # PUBLIC_INTERFACE
    def import_file(self, file_name: str) -> dict[str, Any]:
        ext = file_extension(file_name)
        system = CAD_SYSTEMS.get(ext)
        if system is None:
            raise ValidationFailedError(f"Unsupported file format: {ext or file_name}")
        elements = self.generate_elements(file_name, system)
        logger.info("Imported %d elements from %s (%s)", len(elements), file_name, system)
        return {
            "system": system,
            "elements": elements,
            "metadata": {
                "file_name": file_name.rsplit("/", 1)[-1],
                "imported_at": utcnow().isoformat(),
                "element_count": len(elements),
            },
        }

    @staticmethod
    def generate_elements(file_name: str, system: str) -> list[dict[str, Any]]:
        seed = int(hashlib.sha256(file_name.encode("utf-8")).hexdigest()[:16], 16)
        rng = random.Random(seed)
        types = ELEMENT_TYPES[system]
        elements = []
        for index in range(rng.randint(10, 40)):
            elements.append(
                {
                    "id": f"element_{index}",
                    "type": rng.choice(types),
                    "properties": {
                        "layer": f"Layer_{rng.randint(0, 9)}",
                        "material": rng.choice(MATERIALS),
                        "volume": round(rng.uniform(0.1, 12.0), 3),
                        "weight": round(rng.uniform(50, 25000), 1),
                    },
                }
            )
        return elements

    # PUBLIC_INTERFACE
    def export_elements(self, elements: list[dict[str, Any]], export_format: str) -> dict[str, Any]:
        fmt = export_format.lower().lstrip(".")
        if fmt not in EXPORT_FORMATS:
            raise ValidationFailedError(f"Unsupported export format: {export_format}")
        stamp = utcnow().strftime("%Y%m%d%H%M%S")
        return {
            "format": fmt,
            "file_path": f"/exports/{stamp}_export.{fmt}",
            "element_count": len(elements),
        }

    # PUBLIC_INTERFACE
    def synchronize(self, system: str, elements: list[dict[str, Any]]) -> dict[str, Any]:
        """Summarise a sync: elements with an id are updates, the rest are creations."""
        updated = sum(1 for e in elements if e.get("id"))
        return {
            "system": system,
            "synced_at": utcnow().isoformat(),
            "elements_processed": len(elements),
            "elements_updated": updated,
            "elements_created": len(elements) - updated,
            "elements_failed": 0,
            "status": "completed",
        }

    # PUBLIC_INTERFACE
    def bill_of_materials(self, elements: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Aggregate elements by type into BOM lines."""
        lines: "OrderedDict[str, dict[str, Any]]" = OrderedDict()
        for element in elements:
            kind = element.get("type") or "Unknown"
            props = element.get("properties") or {}
            line = lines.setdefault(kind, {"type": kind, "quantity": 0, "total_volume": 0.0, "materials": []})
            line["quantity"] += 1
            line["total_volume"] = round(line["total_volume"] + float(props.get("volume") or 0), 3)
            material = props.get("material")
            if material and material not in line["materials"]:
                line["materials"].append(material)
        return list(lines.values())
