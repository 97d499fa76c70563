"""
Streamlit Web 应用程序入口。
负责 UI 渲染和用户交互，调用 AppSession 完成导入、评分和批量生成。
"""
import asyncio
import logging

import pandas as pd
import streamlit as st

from shopscore.config import ROLE_ADMIN, ROLE_USER, load_settings
from shopscore.generation.client import MissingCredentialError
from shopscore.importer import FileImportError
from shopscore.models import STATUS_COMPLETED, STATUS_FAILED, STATUS_PROCESSING
from shopscore.scoring import top_by_gmv
from shopscore.service import AppSession

STATUS_ICONS = {
    "pending": "⏳ 等待中",
    STATUS_PROCESSING: "🔄 生成中",
    STATUS_COMPLETED: "✅ 已完成",
    STATUS_FAILED: "⚠️ 失败",
}

# ==========================================
# UI 辅助函数
# ==========================================

def init_session_state():
    """初始化 Session State 变量。"""
    if "app" not in st.session_state:
        settings = load_settings()
        logging.basicConfig(level=settings.log_level, format="[%(asctime)s] %(levelname)s: %(message)s")
        st.session_state.app = AppSession(settings)


def render_sidebar(app: AppSession):
    """渲染侧边栏：头像、身份、Key 与筛选条件。"""
    with st.sidebar:
        st.header("⚙️ 全局设置")
        if app.avatar:
            st.image(app.avatar, width=64)
        avatar_file = st.file_uploader("头像", type=["png", "jpg", "jpeg", "gif"], key="avatar_uploader")
        if avatar_file is not None:
            try:
                app.upload_avatar(avatar_file.name, avatar_file.getvalue())
            except ValueError as e:
                st.error(str(e))

        role = st.radio("身份", (ROLE_USER, ROLE_ADMIN), index=1 if app.is_admin else 0,
                        format_func=lambda x: "👑 管理员" if x == ROLE_ADMIN else "👥 普通用户")
        if role != app.role:
            app.login(role)

        if not app.is_admin:
            key = st.text_input("API Key", value=app.api_key, type="password")
            if key != app.api_key:
                app.set_api_key(key)
        elif not app.api_key:
            st.warning("⚠️ 后台未配置 SHOPSCORE_API_KEY")

        st.markdown("---")
        st.header("🔍 筛选条件")
        low, high = app.price_range
        upper = max(float(app.import_price_range[1]), float(high), 1.0)
        price_range = st.slider("价格区间", 0.0, upper, (float(low), float(high)))
        app.price_range = price_range
        app.min_sales = st.number_input("最低销量", value=float(app.min_sales), step=50.0, min_value=0.0)

        if st.button("退出登录", use_container_width=True):
            app.logout()
            st.rerun()


def render_import_area(app: AppSession):
    """渲染文件上传与列映射确认区域。"""
    st.subheader("1. 导入商品数据")
    uploaded_file = st.file_uploader("上传 CSV / Excel 商品导出文件", type=["csv", "xlsx", "xls"])

    if uploaded_file and st.button("📂 读取文件", type="primary"):
        try:
            pending = app.begin_import(uploaded_file.name, uploaded_file.getvalue())
        except FileImportError as e:
            st.error(f"读取文件失败: {e}")
            return
        if pending is None:
            st.warning("⚠️ 文件中没有可用的商品数据。")

    pending = app.pending_import
    if pending is None:
        return

    st.info(f"📄 {pending.file_name}: {len(pending.rows)} 行数据，请确认列映射。")
    options = [""] + pending.headers
    cols = st.columns(4)
    labels = {"title": "标题列", "price": "价格列", "sales": "销量列", "image": "图片列 (可选)"}
    chosen = {}
    for col, (name, label) in zip(cols, labels.items()):
        current = getattr(pending.mapping, name)
        with col:
            chosen[name] = st.selectbox(label, options, index=options.index(current) if current in options else 0)

    col_ok, col_cancel = st.columns([1, 4])
    with col_ok:
        if st.button("✅ 确认导入", type="primary"):
            app.update_mapping(**chosen)
            products = app.commit_import()
            st.success(f"成功导入 {len(products)} 个商品")
            st.rerun()
    with col_cancel:
        if st.button("取消"):
            app.cancel_import()
            st.rerun()


def render_ranking_area(app: AppSession):
    """渲染评分排行与收藏。"""
    st.markdown("---")
    st.subheader("2. 爆款评分排行")

    ranked = app.ranked()
    report = app.report()
    st.caption(f"📊 商品 {report['商品数']} | 均价 {report['平均价格']} | 最高销量 {report['最高销量']:,.0f} | 总GMV {report['总GMV']:,.0f}")
    if not ranked:
        st.info("当前筛选条件下没有商品。")
        return

    top3 = " / ".join(p.title for p in top_by_gmv([p for p, _ in ranked]))
    st.markdown(f"🏆 **GMV Top 3:** {top3}")

    df = pd.DataFrame([{
        "收藏": p.id in app.favorites,
        "id": p.id,
        "等级": s.grade,
        "评价": s.text,
        "商品标题": p.title,
        "价格": p.price,
        "销量": p.sales,
        "GMV": p.gmv,
    } for p, s in ranked])

    edited = st.data_editor(
        df,
        column_config={
            "收藏": st.column_config.CheckboxColumn("⭐ 收藏"),
            "价格": st.column_config.NumberColumn(format="%.2f"),
            "GMV": st.column_config.NumberColumn(format="%.0f"),
        },
        disabled=["id", "等级", "评价", "商品标题", "价格", "销量", "GMV"],
        hide_index=True,
        use_container_width=True,
        key="ranking_editor",
    )
    for _, row in edited.iterrows():
        if bool(row["收藏"]) != (row["id"] in app.favorites):
            app.toggle_favorite(row["id"])

    data, file_name = app.export_bytes()
    st.download_button(
        label="📥 下载 Excel 报表",
        data=data,
        file_name=file_name,
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


def render_batch_area(app: AppSession):
    """渲染 AI 批量生成中心。"""
    favorites = app.favorite_products()
    if not favorites:
        return

    st.markdown("---")
    st.subheader(f"3. AI 批量生成 ({len(favorites)})")

    pipeline = app.open_batch()
    status_box = st.empty()

    def show_status(_result=None):
        status_box.dataframe(pd.DataFrame([{
            "商品": r.product_name, "状态": STATUS_ICONS.get(r.status, r.status), "错误": r.error_msg or "",
        } for r in pipeline.results()]), hide_index=True, use_container_width=True)

    pipeline.on_update = show_status
    show_status()
    st.caption(f"队列中: {len(favorites)} 个商品 | 已完成: {pipeline.completed_count}")

    if pipeline.completed_count < len(favorites) and st.button("▶️ 开始生成", type="primary"):
        try:
            asyncio.run(pipeline.run_batch())
        except MissingCredentialError:
            st.error("请先输入 API Key")
            return
        st.rerun()

    ids = [r.product_id for r in pipeline.results()]
    selected = st.selectbox("查看结果", ids, format_func=lambda pid: pipeline.get(pid).product_name)
    result = pipeline.get(selected)
    if result is None:
        return

    if result.status == STATUS_FAILED:
        st.error(result.error_msg)
    if st.button("🔁 重新生成", disabled=result.status == STATUS_PROCESSING):
        try:
            asyncio.run(pipeline.regenerate(selected))
        except MissingCredentialError:
            st.error("请先输入 API Key")
            return
        st.rerun()

    if result.status == STATUS_COMPLETED:
        tab_en, tab_zh = st.tabs(["🇺🇸 English", "🇨🇳 中文"])
        for lang, tab, content in (("en", tab_en, result.content_en), ("zh", tab_zh, result.content_zh)):
            with tab:
                st.text_input("标题 / Title", content.title, key=f"{selected}-{lang}-title")
                st.text_area("详情 / Description", content.description, height=220, key=f"{selected}-{lang}-desc")
                st.text_area("脚本 / Script", content.script, height=220, key=f"{selected}-{lang}-script")


# ==========================================
# 主程序
# ==========================================

def main():
    st.set_page_config(page_title="爆款选品分析 & AI 文案", page_icon="🔥", layout="wide")
    init_session_state()
    app: AppSession = st.session_state.app

    st.title("🔥 爆款选品分析 & AI 批量文案")
    st.markdown("---")

    render_sidebar(app)
    render_import_area(app)
    render_ranking_area(app)
    render_batch_area(app)


if __name__ == "__main__":
    main()
