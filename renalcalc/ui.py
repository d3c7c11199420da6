# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

import gradio as gr

from .classify import AdequacyAssessment, TransporterCategory, adequacy_badge, suggest_creatinine_category, suggest_glucose_category
from .episodes import AdequacyEpisode, DonorExamination, EpisodeSlot, HDSession, PETEpisode, PETSeries
from .measurements import PET_QUANTITIES, QUANTITY_LABELS, MeasurementSet, Quantity, TimePoint, measurement_key
from .migrate import KIND_ADEQUACY, KIND_PET, KIND_PET_SERIES, ADEQUACY_FIELDS, build_saved_episode, migrate_payload
from .report import render_adequacy_markdown, render_hd_markdown, render_pet_markdown
from .rules import load_rules, rule
from .version import APP_NAME, APP_VERSION

logger = logging.getLogger(__name__)

HOURLY_ROWS = 4

CSS = """
    .renal-container { max-width: 1100px; margin: 0 auto; }
    .section-card {
        border: 1px solid rgba(0,0,0,0.08);
        border-radius: 12px;
        padding: 12px;
        background: white;
    }
    .small-note { font-size: 12px; opacity: 0.75; }
"""

ASSESSMENT_CHOICES = ["Not assessed", "Adequate", "Inadequate"]
_ASSESSMENT_FLAGS: Dict[str, Optional[bool]] = {"Not assessed": None, "Adequate": True, "Inadequate": False}

SLOT_CHOICES = [s.title for s in EpisodeSlot]

# PET grid: serum creatinine only where it is drawn
PET_FIELDS: List[Tuple[Quantity, TimePoint]] = [
    (q, tp)
    for tp in TimePoint
    for q in PET_QUANTITIES
    if q is not Quantity.SERUM_CREATININE or tp.has_serum_sample
]
ADEQUACY_QUANTITIES: List[Quantity] = list(ADEQUACY_FIELDS.values())


def _slot_from_title(title: Optional[str]) -> Optional[EpisodeSlot]:
    for s in EpisodeSlot:
        if s.title == title:
            return s
    return None


def _category_or_none(label: Optional[str]) -> Optional[TransporterCategory]:
    try:
        return TransporterCategory.from_label(label)
    except ValueError:
        logger.warning("Ignoring unknown transporter category %r", label)
        return None


def pet_episode_from_form(date: Optional[str], cr_class: Optional[str], gl_class: Optional[str], *vals: Any, slot: Optional[EpisodeSlot] = None) -> PETEpisode:
    values = {measurement_key(q, tp): v for (q, tp), v in zip(PET_FIELDS, vals)}
    return PETEpisode(
        slot=slot,
        date=date or "",
        measurements=MeasurementSet.from_mapping(values),
        creatinine_class=_category_or_none(cr_class),
        glucose_class=_category_or_none(gl_class),
    )


def store_pet_form(series: PETSeries, entry_id: Optional[str], date: Optional[str], cr_class: Optional[str], gl_class: Optional[str], *vals: Any) -> PETSeries:
    """Write the form back into its entry. Slot and last results are kept; nothing is recalculated."""
    if not entry_id or not any(e.id == entry_id for e in series.entries):
        return series
    stored = series.get(entry_id)
    episode = pet_episode_from_form(date, cr_class, gl_class, *vals, slot=stored.slot)
    return series.update(entry_id, replace(episode, results=stored.results))


def pet_form_values(episode: PETEpisode) -> List[Any]:
    head = [
        episode.date,
        episode.creatinine_class.value if episode.creatinine_class else "",
        episode.glucose_class.value if episode.glucose_class else "",
    ]
    return head + [episode.measurements.raw(q, tp) for q, tp in PET_FIELDS]


def pet_result_values(episode: PETEpisode, rules: Optional[Dict[str, Any]] = None) -> List[str]:
    res = episode.results
    return [
        res.dp_creatinine.display(),
        _hint_text(suggest_creatinine_category(res.dp_creatinine, rules)),
        res.dd0_glucose.display(),
        _hint_text(suggest_glucose_category(res.dd0_glucose, rules)),
        render_pet_markdown(episode, rules),
    ]


def series_choices(series: PETSeries) -> List[Tuple[str, str]]:
    return [(e.label, e.id) for e in series.entries]


def adequacy_episode_from_form(slot: Optional[str], date: Optional[str], name: Optional[str], assessment: Optional[str], *vals: Any) -> AdequacyEpisode:
    values = {measurement_key(q): v for q, v in zip(ADEQUACY_QUANTITIES, vals)}
    return AdequacyEpisode(
        slot=_slot_from_title(slot),
        date=date or "",
        patient_name=name or "",
        measurements=MeasurementSet.from_mapping(values),
        assessment=AdequacyAssessment.from_flag(_ASSESSMENT_FLAGS.get(assessment or "")),
    )


def _assessment_choice(assessment: AdequacyAssessment) -> str:
    flag = assessment.as_flag()
    for label, f in _ASSESSMENT_FLAGS.items():
        if f is flag:
            return label
    return ASSESSMENT_CHOICES[0]


def _hint_text(cat: Optional[TransporterCategory]) -> str:
    return f"Reference band: {cat.value}" if cat else "Reference band: —"


def _file_path(file_obj: Any) -> Optional[str]:
    # gradio may pass a path, a tempfile object or a dict-like FileData
    if isinstance(file_obj, str):
        return file_obj
    if hasattr(file_obj, "name") and isinstance(getattr(file_obj, "name"), str):
        return file_obj.name
    if isinstance(file_obj, dict) and isinstance(file_obj.get("name"), str):
        return file_obj["name"]
    return None


def build_demo(rules: Optional[Dict[str, Any]] = None) -> gr.Blocks:
    rules = rules if rules is not None else load_rules()
    initial_series = PETSeries().add()
    initial_id = initial_series.entries[0].id

    with gr.Blocks(title=f"{APP_NAME} v{APP_VERSION}") as demo:
        gr.HTML(f"<div class='renal-container'><h2 style='margin-bottom:0'>{APP_NAME} <span style='opacity:0.6;font-size:14px'>v{APP_VERSION}</span></h2><div class='small-note'>Decision support only • results must be checked by the treating clinician</div></div>")

        series_state = gr.State(initial_series)
        current_id = gr.State(initial_id)
        hd_state = gr.State(HDSession())
        donor_state = gr.State(DonorExamination())

        pet_inputs: List[Any] = []
        adequacy_inputs: List[Any] = []

        with gr.Tabs():
            # --- PET ---
            with gr.Tab("PET test"):
                with gr.Row():
                    pet_select = gr.Dropdown(series_choices(initial_series), value=initial_id, label="PET test")
                    btn_pet_add = gr.Button("Add test", variant="secondary")
                    btn_pet_remove = gr.Button("Remove test", variant="secondary")
                pet_date = gr.Textbox(label="Date (YYYY-MM-DD)")
                for tp in TimePoint:
                    with gr.Row():
                        gr.Markdown(f"**{tp.value}**")
                        for q, t in PET_FIELDS:
                            if t is tp:
                                pet_inputs.append(gr.Textbox(label=f"{QUANTITY_LABELS[q]} ({tp.value})"))
                btn_pet = gr.Button("Calculate", variant="primary")
                with gr.Row(elem_classes=["section-card"]):
                    with gr.Column():
                        dp_out = gr.Textbox(label="D/P creatinine", value="Not calculated", interactive=False)
                        dp_hint = gr.Markdown(_hint_text(None))
                        cr_class = gr.Dropdown([""] + TransporterCategory.labels(), label="Creatinine classification", value="")
                    with gr.Column():
                        dd0_out = gr.Textbox(label="D/D0 glucose", value="Not calculated", interactive=False)
                        dd0_hint = gr.Markdown(_hint_text(None))
                        gl_class = gr.Dropdown([""] + TransporterCategory.labels(), label="Glucose classification", value="")
                pet_md = gr.Markdown("—")

            # --- Adequacy ---
            with gr.Tab("Adequacy test"):
                with gr.Row():
                    ad_slot = gr.Dropdown(SLOT_CHOICES, label="Test", value=SLOT_CHOICES[0])
                    ad_date = gr.Textbox(label="Date (YYYY-MM-DD)")
                    ad_name = gr.Textbox(label="Patient name")
                with gr.Row():
                    for q in ADEQUACY_QUANTITIES:
                        adequacy_inputs.append(gr.Textbox(label=QUANTITY_LABELS[q]))
                btn_adequacy = gr.Button("Calculate", variant="primary")
                with gr.Row(elem_classes=["section-card"]):
                    v_out = gr.Textbox(label=f"V = body weight (kg) × {rule(rules, 'adequacy', 'v_factor')}", value="Not calculated", interactive=False)
                    pkt_out = gr.Textbox(label="Peritoneal Kt/V", value="Not calculated", interactive=False)
                    rkt_out = gr.Textbox(label="Renal Kt/V", value="Not calculated", interactive=False)
                    tkt_out = gr.Textbox(label="Total Kt/V", value="Not calculated", interactive=False)
                tkt_badge = gr.Markdown("")
                ad_assessment = gr.Radio(ASSESSMENT_CHOICES, label="Adequacy assessment", value=ASSESSMENT_CHOICES[0])
                ad_md = gr.Markdown("—")

            # --- Hemodialysis ---
            with gr.Tab("Hemodialysis session"):
                with gr.Row():
                    hd_dry = gr.Number(label=QUANTITY_LABELS[Quantity.DRY_WEIGHT_KG])
                    hd_pre = gr.Number(label=QUANTITY_LABELS[Quantity.PRE_DIALYSIS_WEIGHT_KG])
                    hd_gain = gr.Textbox(label="Inter-dialytic weight gain (kg)", value="Not calculated", interactive=False)
                gr.Markdown("### Hourly records")
                hourly: List[Tuple[Any, Any, Any]] = []
                for hour in range(1, HOURLY_ROWS + 1):
                    with gr.Row():
                        pre = gr.Number(label=f"Hour {hour}: pre (kg)")
                        post = gr.Number(label=f"Hour {hour}: post (kg)")
                        gain = gr.Textbox(label=f"Hour {hour}: gain (kg)", value="Not calculated", interactive=False)
                    hourly.append((pre, post, gain))
                hd_md = gr.Markdown(render_hd_markdown(HDSession()))

            # --- Donor ---
            with gr.Tab("Donor examination"):
                with gr.Row():
                    dn_height = gr.Textbox(label=QUANTITY_LABELS[Quantity.HEIGHT_CM])
                    dn_weight = gr.Textbox(label=QUANTITY_LABELS[Quantity.WEIGHT_KG])
                    dn_bmi = gr.Textbox(label="BMI", value="Not calculated", interactive=False)
                btn_bmi = gr.Button("Calculate BMI", variant="secondary")

            # --- Case file ---
            with gr.Tab("Case file"):
                with gr.Row():
                    btn_save_pet = gr.Button("Save selected PET test", variant="secondary")
                    btn_save_adequacy = gr.Button("Save adequacy test", variant="secondary")
                file_download = gr.File(label="Download (JSON)")
                file_load = gr.File(label="Load test (JSON)", file_types=[".json"])
                load_msg = gr.Markdown("")

        pet_form = [pet_date, cr_class, gl_class] + pet_inputs
        pet_results = [dp_out, dp_hint, dd0_out, dd0_hint, pet_md]
        pet_view = [series_state, current_id, pet_select] + pet_form + pet_results
        adequacy_form = [ad_slot, ad_date, ad_name, ad_assessment] + adequacy_inputs

        # --- PET handlers ---
        def _show(series: PETSeries, entry_id: str) -> List[Any]:
            ep = series.get(entry_id)
            selector = gr.update(choices=series_choices(series), value=entry_id)
            return [series, entry_id, selector] + pet_form_values(ep) + pet_result_values(ep, rules)

        def _switch_pet(series, current, target, *form):
            return _show(store_pet_form(series, current, *form), target)

        def _add_pet(series, current, *form):
            series = store_pet_form(series, current, *form).add()
            return _show(series, series.entries[-1].id)

        def _remove_pet(series, current):
            series = series.remove(current)
            if not len(series):
                series = series.add()
            return _show(series, series.entries[0].id)

        def _calc_pet(series, current, *form):
            series = store_pet_form(series, current, *form)
            ep = series.get(current).calculate(rules)
            return [series.update(current, ep)] + pet_result_values(ep, rules)

        # --- Adequacy handler ---
        def _calc_adequacy(slot, date, name, assessment, *vals):
            ep = adequacy_episode_from_form(slot, date, name, assessment, *vals).calculate(rules)
            res = ep.results
            badge = "✓ meets target" if adequacy_badge(res.total_ktv, rules) == "default" else "⚠ below target"
            return (
                res.v_value.display("L"),
                res.peritoneal_ktv.display(),
                res.renal_ktv.display(),
                res.total_ktv.display(),
                badge if res.total_ktv.calculated else "",
                render_adequacy_markdown(ep, rules),
            )

        # --- HD handlers: gain follows its inputs live ---
        def _hd_dry(session: HDSession, value):
            session = session.with_dry_weight(value, rules)
            return session, session.weight_gain.display(), render_hd_markdown(session)

        def _hd_pre(session: HDSession, value):
            session = session.with_pre_dialysis_weight(value, rules)
            return session, session.weight_gain.display(), render_hd_markdown(session)

        def _hd_hourly(index: int):
            def _update(session: HDSession, pre, post):
                session = session.with_hourly_record(index, pre, post, rules)
                return session, session.hourly_records[index].weight_gain.display(), render_hd_markdown(session)
            return _update

        # --- Donor handlers: BMI only on demand ---
        def _dn_height(exam: DonorExamination, value):
            return exam.with_height(value)

        def _dn_weight(exam: DonorExamination, value):
            return exam.with_weight(value)

        def _calc_bmi(exam: DonorExamination):
            exam = exam.calculate_bmi(rules)
            return exam, exam.bmi.display()

        # --- Case file handlers ---
        def _save(episode) -> str:
            payload = build_saved_episode(episode)
            fd, path = tempfile.mkstemp(prefix=f"renal_{payload['kind']}_", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            return path

        def _save_pet(series, current, *form):
            series = store_pet_form(series, current, *form)
            return _save(series.get(current).calculate(rules))

        def _save_adequacy(slot, date, name, assessment, *vals):
            return _save(adequacy_episode_from_form(slot, date, name, assessment, *vals).calculate(rules))

        def _load(file_obj, series, current, *form):
            keep_pet = [series, current] + [gr.update() for _ in pet_view[2:]]
            keep_adequacy = [gr.update() for _ in adequacy_form]
            if not file_obj:
                return keep_pet + keep_adequacy + [""]
            path = _file_path(file_obj)
            try:
                with open(path, "rb") as f:
                    payload = json.loads(f.read().decode("utf-8"))
            except (OSError, TypeError, ValueError) as exc:
                logger.warning("Could not read case file %r: %s", path, exc)
                return keep_pet + keep_adequacy + ["Error while loading the file."]
            kind, loaded, msg = migrate_payload(payload)
            if kind == KIND_PET:
                series = store_pet_form(series, current, *form).add(loaded)
                return _show(series, series.entries[-1].id) + keep_adequacy + [msg]
            if kind == KIND_PET_SERIES:
                return _show(loaded, loaded.entries[0].id) + keep_adequacy + [msg]
            if kind == KIND_ADEQUACY:
                head = [
                    loaded.slot.title if loaded.slot else SLOT_CHOICES[0],
                    loaded.date,
                    loaded.patient_name,
                    _assessment_choice(loaded.assessment),
                ]
                vals = [loaded.measurements.raw(q) for q in ADEQUACY_QUANTITIES]
                return keep_pet + head + vals + [msg]
            return keep_pet + keep_adequacy + [msg]

        # Bind actions: PET/adequacy only recompute on "Calculate"
        pet_select.input(_switch_pet, inputs=[series_state, current_id, pet_select] + pet_form, outputs=pet_view)
        btn_pet_add.click(_add_pet, inputs=[series_state, current_id] + pet_form, outputs=pet_view)
        btn_pet_remove.click(_remove_pet, inputs=[series_state, current_id], outputs=pet_view)
        btn_pet.click(_calc_pet, inputs=[series_state, current_id] + pet_form, outputs=[series_state] + pet_results)
        btn_adequacy.click(_calc_adequacy, inputs=adequacy_form, outputs=[v_out, pkt_out, rkt_out, tkt_out, tkt_badge, ad_md])

        hd_dry.change(_hd_dry, inputs=[hd_state, hd_dry], outputs=[hd_state, hd_gain, hd_md])
        hd_pre.change(_hd_pre, inputs=[hd_state, hd_pre], outputs=[hd_state, hd_gain, hd_md])
        for index, (pre, post, gain) in enumerate(hourly):
            handler = _hd_hourly(index)
            pre.change(handler, inputs=[hd_state, pre, post], outputs=[hd_state, gain, hd_md])
            post.change(handler, inputs=[hd_state, pre, post], outputs=[hd_state, gain, hd_md])

        dn_height.change(_dn_height, inputs=[donor_state, dn_height], outputs=[donor_state])
        dn_weight.change(_dn_weight, inputs=[donor_state, dn_weight], outputs=[donor_state])
        btn_bmi.click(_calc_bmi, inputs=[donor_state], outputs=[donor_state, dn_bmi])

        btn_save_pet.click(_save_pet, inputs=[series_state, current_id] + pet_form, outputs=[file_download])
        btn_save_adequacy.click(_save_adequacy, inputs=adequacy_form, outputs=[file_download])
        file_load.change(_load, inputs=[file_load, series_state, current_id] + pet_form, outputs=pet_view + adequacy_form + [load_msg])

    return demo
