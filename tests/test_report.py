from renalcalc.episodes import AdequacyEpisode, EpisodeSlot, HDSession, PETEpisode
from renalcalc.measurements import PET_QUANTITIES, QUANTITY_LABELS, Quantity, TimePoint
from renalcalc.report import render_adequacy_markdown, render_hd_markdown, render_pet_markdown


def test_pet_markdown():
    ep = (
        PETEpisode(slot=EpisodeSlot.SECOND, date="2024-06-01")
        .with_measurement(Quantity.SERUM_CREATININE, TimePoint.T0, "1.0")
        .with_measurement(Quantity.DIALYSATE_CREATININE, TimePoint.T4, "0.7")
        .with_classification(creatinine="High Average Transporter")
        .calculate()
    )
    md = render_pet_markdown(ep)
    assert md.startswith("### Second PET – 2024-06-01")
    assert "| T3 | n/a | — | — |" in md
    assert "**D/P creatinine:** 0.700" in md
    assert "Classification: High Average Transporter _(reference band: High Average Transporter)_" in md
    assert "**D/D0 glucose:** Not calculated" in md
    assert "Classification: not selected" in md


def test_adequacy_markdown_target():
    ep = (
        AdequacyEpisode(date="2024-06-02", patient_name="Doe")
        .with_measurement(Quantity.BODY_WEIGHT_KG, "70")
        .with_measurement(Quantity.DIALYSATE_UREA_VOLUME_L, "8")
        .with_measurement(Quantity.BLOOD_UREA_MG_DL, "100")
        .calculate()
    )
    md = render_adequacy_markdown(ep)
    assert md.startswith("### Adequacy test – 2024-06-02 – Doe")
    assert "40.60 L" in md
    assert "⚠ below target (≥ 1.7)" in md
    assert "Clinician assessment:** not assessed" in md


def test_adequacy_markdown_not_calculated():
    md = render_adequacy_markdown(AdequacyEpisode().calculate())
    assert "**Total Kt/V:** Not calculated" in md
    assert "below target" not in md


def test_hd_markdown():
    s = HDSession.build(60, 62.5).with_hourly_record(0, pre=62.5, post=61.0)
    md = render_hd_markdown(s)
    assert "Dry weight: 60.0 kg" in md
    assert "**Inter-dialytic weight gain:** 2.50 kg" in md
    assert "| 1 | 62.5 | 61.0 | 1.50 kg |" in md


def test_hd_markdown_blank():
    md = render_hd_markdown(HDSession())
    assert "Dry weight: —" in md
    assert "Not calculated" in md
    assert "| Hour |" not in md


def test_pet_table_header_uses_shared_labels():
    md = render_pet_markdown(PETEpisode())
    header = "| Time | " + " | ".join(QUANTITY_LABELS[q] for q in PET_QUANTITIES) + " |"
    assert header in md
    assert header == "| Time | Serum creatinine | Dialysate creatinine | Dialysate glucose |"
