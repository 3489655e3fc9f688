"""HTML summary of a material report."""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from errors import ExportFailure
from schemas.takeoff import ClarificationQuestion, WallMaterialReport, WallTakeoff
from reports.assemble import MATERIAL_COLUMNS, material_rows, settings_rows, totals_rows
from reports.conditions import describe_assembly


@dataclass
class MaterialReportPage:
    """
    Material report page.

    Renders a WallMaterialReport, its takeoff and any pending clarification
    questions with the material-report.html.j2 template.
    """
    report: WallMaterialReport
    takeoff: WallTakeoff
    pending: Optional[List[ClarificationQuestion]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary for template rendering."""
        return {
            "project_name": self.report.project_name,
            "generated_at": self.report.generated_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
            "material_headers": [h for h, _ in MATERIAL_COLUMNS],
            "materials": material_rows(self.report),
            "totals": totals_rows(self.report),
            "settings": settings_rows(self.report),
            "assemblies": {code: describe_assembly(spec) for code, spec in self.takeoff.specs.items()},
            "wall_totals": self.takeoff.totals,
            "defaulted": self.report.defaulted_type_codes,
            "warnings": self.takeoff.warnings,
            "open_clarifications": self.report.open_clarifications,
            "pending": [
                {
                    "id": q.id,
                    "type": q.question_type.value,
                    "text": q.text,
                    "context": q.context or "",
                    "affects": ", ".join(sorted(q.affected_type_codes)),
                }
                for q in (self.pending or [])
            ],
        }

    def render_html(self, template_dir: Optional[Path] = None) -> str:
        """
        Render the report as HTML.

        Args:
            template_dir: Directory containing Jinja2 templates.
                         Defaults to the templates directory in this package.

        Returns:
            Rendered HTML string
        """
        if template_dir is None:
            template_dir = Path(__file__).parent / "templates"

        env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml", "j2"]),
        )

        template = env.get_template("material-report.html.j2")
        return template.render(**self.to_dict())

    def save_html(self, output_path: Path, template_dir: Optional[Path] = None) -> Path:
        """
        Render and save HTML report to file.

        Raises:
            ExportFailure: If the file cannot be written
        """
        html = self.render_html(template_dir)
        output_path = Path(output_path)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(html)
        except OSError as e:
            raise ExportFailure(f"Could not write HTML report {output_path.name}: {e}", output_path) from e
        return output_path
