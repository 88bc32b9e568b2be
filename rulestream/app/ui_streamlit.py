# -*- coding: utf-8 -*-
"""
Run on a free port, e.g.:
  python -m streamlit run rulestream/app/ui_streamlit.py --server.port 8503
"""

from __future__ import annotations
from typing import Dict

import streamlit as st

from rulestream.app.controller import AppController
from rulestream.errors import RuleStreamError


def parse_variables(text: str) -> Dict[str, str]:
    """'key = value' (or 'key: value') per line; blank lines and '#' comments skipped."""
    variables: Dict[str, str] = {}
    for raw in (text or "").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        for sep in ("=", ":"):
            if sep in line:
                key, value = line.split(sep, 1)
                variables[key.strip()] = value.strip()
                break
    return variables


def main() -> None:
    st.set_page_config(page_title="RuleStream", layout="wide")

    st.markdown(
        """
        <style>
            /* Big, bold custom field titles */
            .field-title {
                font-size: 1.4rem;
                font-weight: 800;
                line-height: 1.2;
                margin-bottom: 0.35rem;
            }
        </style>
        """,
        unsafe_allow_html=True,
    )

    st.title("RuleStream")
    # one controller per user session
    if "controller" not in st.session_state:
        st.session_state.controller = AppController()
        try:
            st.session_state.controller.reload()
        except (FileNotFoundError, NotADirectoryError) as exc:
            st.error(str(exc))
    if "composed_text" not in st.session_state:
        st.session_state["composed_text"] = ""

    ctrl: AppController = st.session_state.controller
    col_left, col_right = st.columns([3, 5], gap="small")

    # LEFT: library + request inputs
    with col_left:
        st.markdown('<div class="field-title">Library</div>', unsafe_allow_html=True)
        st.caption(str(ctrl.library_root))
        if st.button("Reload library", key="btn_reload", use_container_width=True):
            try:
                ctrl.reload()
            except (FileNotFoundError, NotADirectoryError) as exc:
                st.error(str(exc))

        snap = ctrl.snapshot
        st.caption(f"{len(snap)} documents, {len(snap.load_errors)} failed to parse")
        for doc_id, exc in snap.load_errors.items():
            st.error(f"{doc_id}: {exc.reason}")

        template_ids = [d.id for d in snap.templates]
        template_id = st.selectbox("Template", template_ids, key="template_id")
        if template_id:
            wanted = [
                p.name if p.default is None else f"{p.name} (default: {p.default})"
                for p in ctrl.template_variables(template_id)
            ]
            st.caption("Variables: " + (", ".join(wanted) if wanted else "none"))
        rules_ids = ["(template references)"] + [d.id for d in snap.rules]
        rules_choice = st.selectbox("Rules root", rules_ids, key="rules_root")
        st.text_area("Variables (key = value)", key="variables_text", height=140)
        budget = st.number_input("Max characters (0 = unrestricted)", min_value=0, value=0, step=500)

        if st.button("Compose", key="btn_compose", use_container_width=True, disabled=not template_id):
            try:
                report = ctrl.compose(
                    template_id,
                    parse_variables(st.session_state.get("variables_text", "")),
                    rules_root=None if rules_choice == rules_ids[0] else rules_choice,
                    max_budget=int(budget) or None,
                )
            except RuleStreamError as exc:
                st.session_state["composed_text"] = ""
                st.session_state["last_report"] = None
                st.error(str(exc))
            else:
                st.session_state["composed_text"] = report.text
                st.session_state["last_report"] = report
                for finding in report.findings:
                    st.warning(str(finding))
                for ov in report.overrides:
                    st.info(f"{ov.rule_id}: {ov.loser_id} overridden by {ov.winner_id}")

        last_report = st.session_state.get("last_report")
        if st.button("Save composed", key="btn_save", use_container_width=True, disabled=last_report is None):
            path = ctrl.save(last_report)
            st.success(f"Saved to {path}")

    # RIGHT: composed context (the sink)
    with col_right:
        st.markdown('<div class="field-title">Composed Context</div>', unsafe_allow_html=True)
        st.text_area(
            label="Composed (hidden)",
            key="composed_text",
            height=560,
            label_visibility="collapsed",
            disabled=True,
        )

if __name__ == "__main__":
    main()
