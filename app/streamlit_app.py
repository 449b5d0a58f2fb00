import asyncio
import html
import logging
from datetime import datetime

import plotly.express as px
import streamlit as st

from app.core.config import settings
from app.core.exceptions import InputError
from app.services.aggregator import (
    SENTIMENT_COLORS,
    chart_frame,
    normalize_label,
    results_frame,
)
from app.services.input_parser import display_text, read_upload, resolve_posts, post_count_message
from app.services.orchestrator import AnalysisSession, BatchOrchestrator
from app.services.proxy_client import ProxyClient

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Page configuration
st.set_page_config(
    page_title="Social Post Sentiment Analyzer",
    page_icon="💬",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .analysis-card {
        padding: 10px 14px;
        border-left: 4px solid #6c757d;
        background-color: #f8f9fa;
        margin: 10px 0;
        border-radius: 5px;
    }
    .card-positive { border-left-color: #28a745; }
    .card-negative { border-left-color: #dc3545; }
    .card-neutral { border-left-color: #6c757d; }
    .card-mixed { border-left-color: #ffc107; }
    .card-failed { border-left-color: #343a40; }
    .post-text { margin: 0 0 6px 0; color: #333; font-style: italic; }
    .badge { padding: 2px 8px; border-radius: 8px; color: white; font-size: 0.85em; }
</style>
""", unsafe_allow_html=True)

# Session state: one AnalysisSession per browser session, replaced on every run
if "analysis_session" not in st.session_state:
    st.session_state.analysis_session = AnalysisSession()
if "analysis_report" not in st.session_state:
    st.session_state.analysis_report = None
if "raw_text" not in st.session_state:
    st.session_state.raw_text = ""
if "upload_error" not in st.session_state:
    st.session_state.upload_error = None
if "uploaded_posts" not in st.session_state:
    st.session_state.uploaded_posts = None


def load_upload():
    uploaded = st.session_state.get("upload")
    st.session_state.upload_error = None
    st.session_state.uploaded_posts = None
    if uploaded is None:
        return
    try:
        posts = read_upload(uploaded.name, uploaded.getvalue())
    except InputError as e:
        logger.error(f"File read error: {e}")
        st.session_state.upload_error = str(e)
        st.session_state.raw_text = ""
        return
    st.session_state.uploaded_posts = posts
    st.session_state.raw_text = display_text(posts)


def reset_tool():
    st.session_state.raw_text = ""
    st.session_state.uploaded_posts = None
    st.session_state.analysis_report = None
    st.session_state.upload_error = None
    st.session_state.analysis_session = AnalysisSession()


def render_card(container, result):
    sentiment = normalize_label(result.sentiment)
    css = sentiment.lower().replace("/", "")
    color = SENTIMENT_COLORS.get(sentiment, "#6c757d")
    container.markdown(f"""
    <div class="analysis-card card-{css}">
        <p class="post-text">"{html.escape(result.text)}"</p>
        <p style="margin: 0;"><strong>Sentiment:</strong>
            <span class="badge" style="background-color: {color};">{html.escape(sentiment)}</span></p>
        <p style="margin: 5px 0 0 0;"><strong>Justification:</strong> {html.escape(result.justification or 'N/A')}</p>
    </div>
    """, unsafe_allow_html=True)


# Sidebar configuration
st.sidebar.title("⚙️ Configuration")
API_BASE = st.sidebar.text_input("API Base URL", settings.api_base_url)
client = ProxyClient(API_BASE, timeout=settings.request_timeout)

if client.health():
    st.sidebar.success("✅ API Connected")
else:
    st.sidebar.error("❌ API Unreachable")

st.sidebar.markdown("---")
st.sidebar.markdown("### 📊 Analysis Options")
mode = st.sidebar.radio(
    "Request mode",
    ["batch", "per_post"],
    index=0 if settings.analysis_mode == "batch" else 1,
    format_func=lambda m: "Batches of posts" if m == "batch" else "One post per request (with retry)",
)
batch_size = st.sidebar.slider("Posts per batch", 1, 50, settings.batch_size, disabled=mode != "batch")
model_insights = st.sidebar.checkbox("Ask the AI for strategic insights", value=settings.model_insights)

# Main title
st.title("💬 Social Post Sentiment Analyzer")
st.markdown("Paste or upload social media posts to classify their sentiment with a large language model")

tab1, tab2, tab3 = st.tabs(["📝 Text Analysis", "📊 Visualizations", "🧾 Technical Report"])

# ==================== TAB 1: TEXT ANALYSIS ====================
with tab1:
    col1, col2 = st.columns([2, 1])

    with col2:
        st.file_uploader(
            "Upload a .txt or .csv file",
            type=["txt", "csv"],
            key="upload",
            on_change=load_upload,
            help="CSV files use the first column of every row",
        )
        if st.session_state.upload_error:
            st.error(st.session_state.upload_error)
        st.info("""
        - Separate posts with a blank line, or put one post per line
        - At most %d posts are analyzed per run
        """ % settings.max_posts)

    with col1:
        st.text_area(
            "Enter posts",
            key="raw_text",
            placeholder="Great product!\n\nTerrible support.\n\nIt's okay.",
            height=250,
        )
        current_posts = resolve_posts(st.session_state.raw_text, st.session_state.uploaded_posts)
        count_message = post_count_message(len(current_posts), settings.max_posts)
        if len(current_posts) > settings.max_posts:
            st.warning(count_message)
        else:
            st.caption(count_message)

    btn_col1, btn_col2 = st.columns([3, 1])
    analyze_clicked = btn_col1.button("🔍 Analyze Posts", type="primary", use_container_width=True)
    btn_col2.button("♻️ Reset", on_click=reset_tool, use_container_width=True)

    cards = st.container()

    if analyze_clicked:
        if not current_posts:
            st.warning("Please paste or upload some text to analyze.")
        else:
            st.session_state.analysis_session = AnalysisSession()
            st.session_state.analysis_report = None
            orchestrator = BatchOrchestrator(
                client,
                batch_size=batch_size,
                max_posts=settings.max_posts,
                mode=mode,
                attempts=settings.post_attempts,
                model_insights=model_insights,
                session=st.session_state.analysis_session,
            )
            progress = st.progress(0.0)
            status = st.empty()

            def on_progress(message, index, total):
                status.info(message)
                progress.progress(index / total if total else 1.0)

            def on_results(results):
                for r in results:
                    render_card(cards, r)

            try:
                report = asyncio.run(orchestrator.run(current_posts, on_progress, on_results))
            except InputError as e:
                st.warning(str(e))
            except Exception as e:
                logger.exception("Analysis error")
                st.error(f"Analysis stopped due to an error: {e}")
            else:
                st.session_state.analysis_report = report
                progress.progress(1.0)
                summary = f"Analyzed {report.analyzed_count} of {len(report.results)} posts"
                if st.session_state.analysis_session.is_complete:
                    status.success(f"✅ {summary}")
                else:
                    status.warning(f"⚠️ {summary}; some posts have no result")
    elif st.session_state.analysis_report:
        for r in st.session_state.analysis_report.results:
            render_card(cards, r)

    report = st.session_state.analysis_report
    if report:
        for message in report.errors:
            st.error(message)

# ==================== TAB 2: VISUALIZATIONS ====================
with tab2:
    st.header("📊 Sentiment Distribution")

    report = st.session_state.analysis_report
    if report:
        tally = report.tally
        col1, col2, col3, col4, col5 = st.columns(5)
        col1.metric("Total Posts", len(report.results))
        col2.metric("😊 Positive", tally.Positive)
        col3.metric("😞 Negative", tally.Negative)
        col4.metric("😐 Neutral", tally.Neutral)
        col5.metric("🤔 Mixed", tally.Mixed)

        df_chart = chart_frame(tally)
        fig_bar = px.bar(
            df_chart,
            x="sentiment",
            y="posts",
            color="sentiment",
            color_discrete_map=SENTIMENT_COLORS,
            labels={"posts": "Number of Posts", "sentiment": "Sentiment"},
            title="Final Sentiment Distribution",
        )
        fig_bar.update_layout(showlegend=False, yaxis=dict(dtick=1, rangemode="tozero"))
        st.plotly_chart(fig_bar, use_container_width=True)

        st.subheader("💡 Interpretation")
        if report.insights:
            st.markdown(report.insights.summary)
            for insight in report.insights.insights_list:
                st.markdown(f"- {insight}")
        else:
            st.markdown(report.interpretation)

        st.subheader("📋 Data Table")
        df = results_frame(report.results)
        st.dataframe(df, use_container_width=True)
        st.download_button(
            label="📥 Download CSV",
            data=df.to_csv(index=False),
            file_name=f"sentiment_analysis_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv",
            mime="text/csv"
        )
    else:
        st.info("👆 Analyze some posts first to see visualizations")

# ==================== TAB 3: TECHNICAL REPORT ====================
with tab3:
    report = st.session_state.analysis_report
    if report:
        st.markdown(report.technical_report)
        if report.truncated:
            st.warning(f"Only the first {settings.max_posts} posts were analyzed.")
    else:
        st.info("Details about the analysis process will appear here after a run.")

# Footer
st.markdown("---")
st.markdown(
    """
    <div style="text-align: center; color: #666;">
        <p>Social Post Sentiment Analyzer | Built with FastAPI, OpenAI, and Streamlit</p>
    </div>
    """,
    unsafe_allow_html=True
)
