# File: icugenotypes/report.py
# Location: icugenotypes/icugenotypes/report.py

"""Render the HTML study report from a StudyResults."""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import pandas as pd
from jinja2 import Environment, FileSystemLoader, select_autoescape

from icugenotypes.version import __version__

if TYPE_CHECKING:
    from icugenotypes.analysis import StudyResults

logger = logging.getLogger("icugenotypes")


def _table_html(df: Optional[pd.DataFrame], index: bool = False) -> str:
    if df is None or df.empty:
        return "<p class='empty'>No data.</p>"
    return df.to_html(
        index=index,
        float_format=lambda v: f"{v:.4g}",
        na_rep="NA",
        classes="table",
        border=0,
    )


def _locus_sections(
    results: "StudyResults", figures: Dict[str, Path], output_dir: Path
) -> List[Dict[str, Any]]:
    sections = []
    for locus_cfg_name, locus in results.loci.items():
        figure = figures.get(f"{locus_cfg_name}_conditional")
        sections.append(
            {
                "name": locus.name,
                "variant": locus.variant,
                "frequencies": {
                    key: _table_html(freq.to_frame()) for key, freq in locus.frequencies.items()
                },
                "residuals": _table_html(locus.residuals_by_outcome, index=True),
                "collapsed": _table_html(locus.collapsed_by_outcome, index=True),
                "conditional": _table_html(locus.conditional_proportions),
                "figure": figure.relative_to(output_dir).as_posix() if figure else None,
            }
        )
    return sections


def render_report(
    results: "StudyResults",
    output_dir: str,
    cfg: Dict[str, Any],
    figures: Optional[Dict[str, Path]] = None,
) -> Path:
    """
    Render ``report.html`` into ``output_dir``.

    Parameters
    ----------
    results : StudyResults
        Output of ``run_study()``.
    output_dir : str
        Directory for the report; figures must live inside it.
    cfg : dict
        Configuration (title and loci descriptions).
    figures : dict, optional
        Figure name to PNG path, as returned by ``write_plots()``.

    Returns
    -------
    Path
        Path of the written report.
    """
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    figures = {name: Path(p).resolve() for name, p in (figures or {}).items()}
    resolved_dir = out_dir.resolve()

    templates_dir = Path(__file__).parent / "templates"
    if not templates_dir.exists():
        raise FileNotFoundError(f"Templates directory not found at: {templates_dir}")

    env = Environment(
        loader=FileSystemLoader(str(templates_dir)), autoescape=select_autoescape(["html"])
    )
    template = env.get_template("report.html")

    def rel(name: str) -> Optional[str]:
        path = figures.get(name)
        return path.relative_to(resolved_dir).as_posix() if path else None

    expression = None
    if results.expression is not None:
        from icugenotypes.analysis import expression_tests_frame

        expression = {
            "locus": results.expression.locus,
            "summary": _table_html(results.expression.summary),
            "tests": _table_html(expression_tests_frame(results.expression)),
            "figure": rel("expression_boxplot"),
        }

    html_content = template.render(
        title=cfg.get("report_title", "Genotype association with ICU outcome"),
        version=__version__,
        outcome=results.outcome,
        outcome_levels=results.outcome_levels,
        statistics=vars(results.config),
        baseline_continuous=_table_html(results.baseline_continuous),
        baseline_categorical=_table_html(results.baseline_categorical),
        age_summary=_table_html(results.age_summary),
        age_prechecks=_table_html(results.age_prechecks),
        age_ttests=_table_html(results.age_ttests),
        age_figure=rel("age_density"),
        logistic=_table_html(results.logistic),
        hwe=_table_html(results.hwe),
        case_control=_table_html(results.case_control),
        outcome_association=_table_html(results.outcome_association),
        loci=_locus_sections(results, figures, resolved_dir),
        expression=expression,
        expression_note=results.expression_note,
    )

    output_path = out_dir / "report.html"
    with open(output_path, "w", encoding="utf-8") as out_f:
        out_f.write(html_content)
    logger.info(f"HTML report written to {output_path}")
    return output_path
