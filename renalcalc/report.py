# -*- coding: utf-8 -*-
from __future__ import annotations

from typing import Any, Dict, List, Optional

from .classify import (
    TransporterCategory,
    meets_adequacy_target,
    suggest_creatinine_category,
    suggest_glucose_category,
)
from .episodes import AdequacyEpisode, HDSession, PETEpisode
from .measurements import PET_QUANTITIES, QUANTITY_LABELS, Quantity, TimePoint
from .rules import rule
from .util import fmt_num, join_nonempty


def _cell(v: Any) -> str:
    txt = "" if v is None else str(v).strip()
    return txt or "—"


def _label(cat: Optional[TransporterCategory]) -> str:
    return cat.value if cat else "not selected"


def _hint(cat: Optional[TransporterCategory]) -> str:
    return f" _(reference band: {cat.value})_" if cat else ""


def render_pet_markdown(episode: PETEpisode, rules: Optional[Dict[str, Any]] = None) -> str:
    title = f"{episode.slot.title} PET" if episode.slot else "PET"
    lines: List[str] = [f"### {title}" + (f" – {episode.date}" if episode.date else "")]

    lines.append("")
    lines.append("| Time | " + " | ".join(QUANTITY_LABELS[q] for q in PET_QUANTITIES) + " |")
    lines.append("|---|" + "---|" * len(PET_QUANTITIES))
    for tp in TimePoint:
        cells = []
        for q in PET_QUANTITIES:
            if q is Quantity.SERUM_CREATININE and not tp.has_serum_sample:
                cells.append("n/a")
            else:
                cells.append(_cell(episode.measurements.raw(q, tp)))
        lines.append(f"| {tp.value} | " + " | ".join(cells) + " |")

    res = episode.results
    lines.append("")
    lines.append(f"- **D/P creatinine:** {res.dp_creatinine.display()}")
    lines.append(
        f"  - Classification: {_label(episode.creatinine_class)}"
        + _hint(suggest_creatinine_category(res.dp_creatinine, rules))
    )
    lines.append(f"- **D/D0 glucose:** {res.dd0_glucose.display()}")
    lines.append(
        f"  - Classification: {_label(episode.glucose_class)}"
        + _hint(suggest_glucose_category(res.dd0_glucose, rules))
    )
    return "\n".join(lines)


def _assessment_text(flag: Optional[bool]) -> str:
    if flag is None:
        return "not assessed"
    return "adequate" if flag else "inadequate"


def render_adequacy_markdown(episode: AdequacyEpisode, rules: Optional[Dict[str, Any]] = None) -> str:
    title = f"{episode.slot.title} adequacy test" if episode.slot else "Adequacy test"
    head = join_nonempty([title, episode.date, episode.patient_name], sep=" – ")
    res = episode.results
    target = float(rule(rules, "adequacy", "total_ktv_target"))

    total = res.total_ktv.display()
    met = meets_adequacy_target(res.total_ktv, rules)
    if met is False:
        total += f" ⚠ below target (≥ {target:g})"
    elif met:
        total += f" ✓ target ≥ {target:g} met"

    lines = [
        f"### {head}",
        "",
        f"- **V (body weight × {rule(rules, 'adequacy', 'v_factor')}):** {res.v_value.display('L')}",
        f"- **Peritoneal Kt/V:** {res.peritoneal_ktv.display()}",
        f"- **Renal Kt/V:** {res.renal_ktv.display()}",
        f"- **Total Kt/V:** {total}",
        f"- **Clinician assessment:** {_assessment_text(episode.assessment.as_flag())}",
    ]
    return "\n".join(lines)


def _kg(v: Optional[float]) -> str:
    return "—" if v is None else f"{fmt_num(v, 1)} kg"


def render_hd_markdown(session: HDSession) -> str:
    lines = [
        "### Hemodialysis session",
        "",
        f"- Dry weight: {_kg(session.dry_weight_kg)}",
        f"- Pre-dialysis weight: {_kg(session.pre_dialysis_weight_kg)}",
        f"- **Inter-dialytic weight gain:** {session.weight_gain.display('kg')}",
    ]
    if session.hourly_records:
        lines += ["", "| Hour | Pre (kg) | Post (kg) | Gain |", "|---|---|---|---|"]
        for rec in session.hourly_records:
            lines.append(
                f"| {rec.hour} | {_cell(rec.pre_dialysis_weight_kg)} | {_cell(rec.post_dialysis_weight_kg)} | {rec.weight_gain.display('kg')} |"
            )
    return "\n".join(lines)
