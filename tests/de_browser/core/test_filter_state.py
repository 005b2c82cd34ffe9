from __future__ import annotations

from de_browser.core.filter_state import FilterState


def test_filter_state_to_from_dict_roundtrip():
    st = FilterState(
        dataset_name="ds1",
        view_id="volcano",
        genes=["Csn2", "g2"],
        chromosomes=["chr1"],
        padj_threshold=0.01,
        lfc_threshold=2.0,
        direction="up",
        top_n=5,
        flank=500,
        bin_size=10,
        log_scale=False,
    )

    raw = st.to_dict()
    rebuilt = FilterState.from_dict(raw)

    assert rebuilt == st


def test_filter_state_from_dict_blank_inputs():
    # Cleared number inputs arrive from Dash as None or ""
    st = FilterState.from_dict(
        {"dataset_name": "ds1", "view_id": "volcano", "padj_threshold": "", "lfc_threshold": None, "top_n": ""}
    )

    assert st.padj_threshold is None
    assert st.lfc_threshold is None
    assert st.top_n is None
    assert st.direction == "both"
    assert st.flank == 2000
    assert st.bin_size == 50
    assert st.log_scale is True
