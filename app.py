import json
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

from insights.action_items import (
    ActionItemError,
    add_action_item,
    delete_action_item,
    edit_action_item,
    list_action_items,
    toggle_action_item,
)
from insights.backend import get_backend
from insights.config import configure_logging, get_config
from insights.csv_ingest import CSVError, preview_csv, validation_report
from insights.data import load_dashboard_data
from insights.mapping import DASHBOARD_FIELDS, missing_fields_message, suggest_mapping, validate_mapping
from insights.metrics_collaboration import compute_collaboration
from insights.metrics_commitment import compute_commitment
from insights.metrics_engagement import compute_engagement
from insights.metrics_features import compute_features
from insights.metrics_overview import compute_overview
from insights.metrics_quality import compute_data_quality, quality_report
from insights.metrics_responsiveness import compute_responsiveness
from insights.metrics_submissions import compute_client_submissions
from insights.models import PRODUCTS
from insights.quarters import format_quarter_label
from insights.records import DATASETS, get_dataset
from insights.service import (
    build_context,
    export_dataset_csv,
    upload_dashboard_csv,
    upload_dataset_csv,
    validate_mapped_csv,
)


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .card-actions {font-size: 0.9rem;color: #2563eb;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str, actions: Optional[str] = None):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
            <div class="card-actions">{actions or ""}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(product: str, quarter: str, source: Optional[str]) -> str:
    chips = [f"Product: {product}", f"Quarter: {format_quarter_label(quarter)}", f"Data: {source or 'n/a'}"]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_page_header(title: str, breadcrumb: str, filter_summary_html: str, export_csv: Optional[str] = None, export_name: str = "export.csv"):
    inject_base_styles()
    top = st.container()
    c1, c2 = top.columns([7, 3])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        btn_cols = st.columns(2)
        if btn_cols[0].button("Refresh"):
            st.rerun()
        if export_csv:
            btn_cols[1].download_button(
                "Export CSV",
                data=export_csv.encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{filter_summary_html}</div>", unsafe_allow_html=True)


def show_chart(payload: Dict[str, Any], key: str, empty_message: str = "No data for this chart."):
    spec = (payload.get("charts") or {}).get(key)
    if spec:
        st.vega_lite_chart(spec, use_container_width=True)
    else:
        st.info(empty_message)


def fmt_pct(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.0f}%"


def fmt_delta(value: Optional[float]) -> Optional[str]:
    return None if value is None else f"{value:+.1f} pts"


def show_csv_error(exc: CSVError):
    st.error(exc.message)
    for line in exc.details:
        st.caption(line)


# ---------- UI setup ----------
config = get_config()
configure_logging(config.log_level)

st.set_page_config(page_title="Client Insights Dashboard", layout="wide")
inject_base_styles()
st.title("Client Insights Dashboard")
st.caption("Responsiveness, roadmap commitments and client engagement by product and quarter.")


@st.cache_resource
def app_backend():
    return get_backend(config)


backend = app_backend()

# ----- Sidebar: navigation + filters -----
with st.sidebar:
    st.markdown("### Navigate")
    nav_choice = st.radio("Navigate", ["Dashboard", "Upload & Validate", "Data Quality", "Action Items"], index=0)

    st.markdown("---")
    st.markdown("### Filters")
    product = st.selectbox("Product", options=PRODUCTS, index=0)
    quarters = load_dashboard_data(backend, product).get("quarters") or []
    if quarters:
        quarter = st.selectbox("Quarter", options=quarters, index=0, format_func=format_quarter_label)
    else:
        quarter = st.text_input("Quarter (e.g. FY26 Q2)", "FY26 Q2")

    with st.expander("Advanced settings", expanded=False):
        top_n = st.slider("Top features", min_value=5, max_value=50, value=10, step=5)
        detail_quarter = st.selectbox(
            "Idea detail quarter",
            options=quarters or [quarter],
            index=0,
            format_func=format_quarter_label,
        )

filters = {"product": product, "quarter": quarter, "top_n": top_n, "detail_quarter": detail_quarter}
f, ctx = build_context(backend, filters)
if ctx.get("warning"):
    st.warning(ctx["warning"])
filter_summary_html = format_filter_summary(f.product, f.quarter, ctx.get("source"))


# ----- Page renderers -----

def render_kpi_tiles(overview: Dict[str, Any]):
    kpis = overview["kpis"]
    cols = st.columns(4)
    resp = kpis["responsiveness"]
    cols[0].metric("Responsiveness", fmt_pct(resp["value"]), fmt_delta(resp["change"]))
    ra = kpis["roadmap_alignment"]
    cols[1].metric(
        "Roadmap Alignment",
        f"{ra['committed']:.0f} / {ra['total']:.0f}",
        ra["commitment_status"],
        delta_color="off",
    )
    cols[1].progress(min(100, max(0, int(ra["progress_pct"]))) / 100)
    ce = kpis["continued_engagement"]
    cols[2].metric("Continued Engagement", fmt_pct(ce["rate"]), help=f"{ce['numerator'] or 0:.0f} of {ce['denominator'] or 0:.0f} ideas")
    collab = kpis["cross_client_collaboration"]
    cols[3].metric("Cross-Client Collaboration", fmt_pct(collab["value"]), fmt_delta(collab["change"]))

    cols = st.columns(2)
    volume = kpis["idea_volume"]
    cols[0].metric("Ideas This Quarter", f"{volume['quarterly'] or 0:,.0f}", help=f"{volume['total'] or 0:,.0f} total")
    cols[1].metric("Aging Ideas", f"{kpis['aging_ideas']['count'] or 0:,.0f}")


def render_idea_table(ideas: List[Dict[str, Any]], empty: str = "No ideas recorded for this quarter."):
    if ideas:
        st.dataframe(pd.DataFrame(ideas), hide_index=True, use_container_width=True)
    else:
        st.info(empty)


def render_dashboard_page():
    export_csv = export_dataset_csv(backend, "features", f.product, f.quarter)
    render_page_header("Dashboard", f"Home / {f.product}", filter_summary_html, export_csv=export_csv, export_name="features.csv")

    overview = compute_overview(f, ctx)
    if not overview["has_data"]:
        st.info(f"No dashboard data uploaded for {f.product} {format_quarter_label(f.quarter)} yet.")
    with card("Key Metrics"):
        render_kpi_tiles(overview)

    cols = st.columns(2)
    with cols[0]:
        with card("Aging Ideas Trend"):
            show_chart(overview, "aging_ideas_trend")
    with cols[1]:
        with card("Responsiveness (quarterly)"):
            show_chart(overview, "responsiveness_sparkline")

    responsiveness = compute_responsiveness(f, ctx)
    with card("Responsiveness Trend"):
        show_chart(responsiveness, "responsiveness_trend")
        detail = responsiveness.get("selected_quarter")
        if detail:
            st.caption(f"Ideas moved out of review in {detail['label']}")
            render_idea_table([{"idea": i} for i in detail.get("ideas_list") or []])

    commitment = compute_commitment(f, ctx)
    with card("Roadmap Commitments", actions=commitment["status"]):
        cols = st.columns(2)
        with cols[0]:
            show_chart(commitment, "committed_vs_delivered")
        with cols[1]:
            show_chart(commitment, "delivery_rate")
        show_chart(commitment, "quarterly_deliveries", "No quarterly delivery breakdown.")

    engagement = compute_engagement(f, ctx)
    with card("Continued Engagement", actions=f"{engagement['window_days']}-day window"):
        show_chart(engagement, "engagement_trend")
        tabs = st.tabs(["Included", "Excluded"])
        with tabs[0]:
            render_idea_table(engagement["included_ideas"])
        with tabs[1]:
            render_idea_table(engagement["excluded_ideas"])

    cols = st.columns(2)
    submissions = compute_client_submissions(f, ctx)
    with cols[0]:
        with card("Clients Submitting Ideas"):
            show_chart(submissions, "clients_representing")
            selected = submissions.get("selected_quarter")
            if selected:
                render_idea_table(selected.get("ideas") or [])
    collaboration = compute_collaboration(f, ctx)
    with cols[1]:
        with card("Cross-Client Collaboration"):
            show_chart(collaboration, "collaboration_trend")
            current = collaboration.get("current")
            if current:
                render_idea_table(current.get("top_collaborative_ideas") or [])

    features = compute_features(f, ctx)
    with card("Top Features", actions=f"{features['feature_count']} features"):
        cols = st.columns([3, 2])
        with cols[0]:
            show_chart(features, "top_features")
        with cols[1]:
            show_chart(features, "status_distribution")
        if features["quarterly_comparison"]:
            st.markdown("**Quarter over quarter**")
            st.dataframe(pd.DataFrame(features["quarterly_comparison"]), hide_index=True, use_container_width=True)
    with card("Idea Distribution by Year"):
        show_chart(features, "idea_distribution")
    with card("Data Socialization Forums"):
        if features["forums"]:
            st.dataframe(pd.DataFrame(features["forums"]), hide_index=True, use_container_width=True)
        else:
            st.info("No forums recorded.")


def show_validation(validation, report: Dict[str, Any], file_name: str):
    with card("Validation", actions="passed" if validation.is_valid else "failed"):
        cols = st.columns(4)
        cols[0].metric("Rows", validation.row_count)
        cols[1].metric("Columns", validation.column_count)
        cols[2].metric("Duplicates", validation.duplicate_rows)
        cols[3].metric("Missing values", validation.missing_value_count)
        for err in validation.errors:
            st.error(err)
        for warn in validation.warnings:
            st.warning(warn)
        st.download_button(
            "Download validation report",
            data=json.dumps(report, indent=2, default=str).encode("utf-8"),
            file_name=f"validation-report-{file_name}.json",
            mime="application/json",
        )


def render_upload_page():
    render_page_header("Upload & Validate", "Home / Upload", filter_summary_html)
    target = st.selectbox(
        "Upload target",
        options=["dashboard"] + list(DATASETS),
        format_func=lambda k: "Dashboard summary" if k == "dashboard" else DATASETS[k].label,
    )
    uploaded = st.file_uploader("CSV file", type=["csv"])
    if uploaded is None:
        st.caption(f"Uploads go to {f.product} / {format_quarter_label(f.quarter)}. Change the filters in the sidebar.")
        return

    content = uploaded.getvalue()
    try:
        if target == "dashboard":
            preview = preview_csv(content)
        elif target == "features":
            # required columns are checked after mapping
            preview = preview_csv(content, [], [])
        else:
            spec = get_dataset(target)
            preview = preview_csv(content, spec.required, spec.numeric + spec.integer)
    except CSVError as exc:
        show_csv_error(exc)
        return

    with card("Preview"):
        st.dataframe(pd.DataFrame(preview.rows, columns=preview.headers), hide_index=True, use_container_width=True)

    validation = preview.validation
    mapping: Optional[Dict[str, Optional[str]]] = None
    if target == "features":
        with card("Field Mapping"):
            suggested = suggest_mapping(preview.headers)
            options = [""] + [fld.key for fld in DASHBOARD_FIELDS]
            labels = {fld.key: f"{fld.label}{' *' if fld.required else ''}" for fld in DASHBOARD_FIELDS}
            mapping = {}
            for header in preview.headers:
                default = suggested.get(header, "")
                choice = st.selectbox(
                    header,
                    options=options,
                    index=options.index(default) if default in options else 0,
                    format_func=lambda k: labels.get(k, "(skip)"),
                    key=f"map_{header}",
                )
                mapping[header] = choice or None
            missing = validate_mapping(mapping)
            if missing:
                st.warning(missing_fields_message(missing))
        try:
            validation = validate_mapped_csv(content, mapping, f.product, f.quarter, target)
        except CSVError as exc:
            show_csv_error(exc)
            return
        ready = validation.is_valid and not missing
    else:
        ready = validation.is_valid

    report = validation_report(replace(preview, validation=validation), uploaded.name, uploaded.size)
    show_validation(validation, report, uploaded.name)

    if st.button("Upload", type="primary", disabled=not ready):
        try:
            if target == "dashboard":
                upload_dashboard_csv(backend, content, f.product, f.quarter)
                st.success(f"Dashboard for {f.product} {format_quarter_label(f.quarter)} saved.")
            else:
                summary = upload_dataset_csv(backend, target, content, f.product, f.quarter, mapping)
                st.success(f"Inserted {summary.inserted} rows ({summary.replaced} replaced, {summary.skipped_rows} skipped).")
                for warn in summary.warnings:
                    st.warning(warn)
        except CSVError as exc:
            show_csv_error(exc)


def render_quality_page():
    render_page_header("Data Quality", "Home / Data Quality", filter_summary_html)
    quality = compute_data_quality(f, ctx)
    if not quality["has_data"]:
        st.info("No dashboard data for the selected product and quarter.")
        return
    summary = quality["summary"]
    cols = st.columns(3)
    cols[0].metric("Passed", summary.get("pass", 0))
    cols[1].metric("Warnings", summary.get("warning", 0))
    cols[2].metric("Failed", summary.get("fail", 0))
    with card("Validation Checks"):
        st.dataframe(pd.DataFrame(quality["validation"]), hide_index=True, use_container_width=True)
    with card("Calculation Checks"):
        st.dataframe(
            pd.DataFrame(quality["calculations"])[["name", "formula", "result", "status", "message"]],
            hide_index=True,
            use_container_width=True,
        )
    report = quality_report(f, ctx)
    st.download_button(
        "Export validation report",
        data=json.dumps(report, indent=2, default=str).encode("utf-8"),
        file_name=f"data-validation-{f.product}-{f.quarter}.json".replace(" ", "-"),
        mime="application/json",
    )


def render_action_items_page():
    render_page_header("Action Items", "Home / Action Items", filter_summary_html)
    with card("New action item"):
        with st.form("new_action_item", clear_on_submit=True):
            text = st.text_input("Action item")
            if st.form_submit_button("Add"):
                try:
                    add_action_item(backend, f.product, f.quarter, text)
                    st.rerun()
                except ActionItemError as exc:
                    st.error(str(exc))

    items = list_action_items(backend, f.product, f.quarter)
    with card("Action items", actions=f"{sum(1 for i in items if i.get('completed'))}/{len(items)} done"):
        if not items:
            st.info("No action items for this quarter.")
        for item in items:
            cols = st.columns([1, 8, 1])
            done = cols[0].checkbox("done", value=bool(item.get("completed")), key=f"done_{item['id']}", label_visibility="collapsed")
            if done != bool(item.get("completed")):
                toggle_action_item(backend, item["id"])
                st.rerun()
            new_text = cols[1].text_input("text", value=item["text"], key=f"text_{item['id']}", label_visibility="collapsed")
            if new_text != item["text"]:
                try:
                    edit_action_item(backend, item["id"], new_text)
                except ActionItemError as exc:
                    st.error(str(exc))
            if cols[2].button("Delete", key=f"del_{item['id']}"):
                delete_action_item(backend, item["id"])
                st.rerun()


if nav_choice == "Dashboard":
    render_dashboard_page()
elif nav_choice == "Upload & Validate":
    render_upload_page()
elif nav_choice == "Data Quality":
    render_quality_page()
else:
    render_action_items_page()
