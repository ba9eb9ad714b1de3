import streamlit as st
import base64
import json
import time
from datetime import datetime

from pydantic import ValidationError

import config
from card_schema import DREAM_ROLES, LegendRequest
from legend_pipeline import build_default_pipeline
from roast_generator import RoastGenerationError
from share_codec import share_url, permalink_url

config.configure_logging()

st.set_page_config(
    page_title="Legend Roast Cards",
    layout="wide"
)


@st.cache_resource
def get_pipeline():
    return build_default_pipeline()


def image_source(image: str):
    """st.image takes URLs directly; data URIs have to be decoded to bytes."""
    if image.startswith("data:"):
        _, encoded = image.split(",", 1)
        return base64.b64decode(encoded)
    return image


st.title("Legend Roast Cards")
st.markdown("""
Pick a tech legend, pick the job they supposedly want, and get a trading card
that roasts their odds.
""")

if 'outcome' not in st.session_state:
    st.session_state.outcome = None
if 'dream_role' not in st.session_state:
    st.session_state.dream_role = "founder"
if 'generation_count' not in st.session_state:
    st.session_state.generation_count = 0


col1, col2 = st.columns([2, 1])

with col1:
    st.subheader("Who are we roasting?")

    name = st.text_input("Name", placeholder="Brian Chesky")
    dream_role = st.selectbox(
        "Dream role",
        options=list(DREAM_ROLES),
        format_func=lambda key: f"{DREAM_ROLES[key]['label']} - {DREAM_ROLES[key]['description']}"
    )
    image_url = st.text_input("Photo URL (optional)", help="Used to keep the artwork recognizable")
    extract = st.text_area("Background (optional)", help="A short bio, e.g. a Wikipedia summary")

    col_btn1, col_btn2, col_btn3 = st.columns([1, 1, 2])

    with col_btn1:
        generate_button = st.button("Generate Card", type="primary", use_container_width=True)

    with col_btn2:
        if st.session_state.outcome:
            regenerate_button = st.button("Try Again", use_container_width=True)
        else:
            regenerate_button = False

    if generate_button or regenerate_button:
        try:
            request = LegendRequest(
                name=name,
                dreamRole=dream_role,
                imageUrl=image_url,
                wikipediaExtract=extract,
                forceRegenerate=bool(regenerate_button),
            )
        except ValidationError as e:
            st.error(e.errors()[0]["msg"].removeprefix("Value error, "))
            st.stop()

        start_time = time.time()
        try:
            with st.spinner("Roasting..."):
                outcome = get_pipeline().resolve(request)
        except RoastGenerationError:
            st.error("The roast didn't come out right. Please try again.")
            st.stop()
        except Exception as e:
            st.error(f"Error generating card: {str(e)}")
            st.stop()

        st.session_state.outcome = outcome
        st.session_state.dream_role = dream_role
        st.session_state.generation_count += 1
        st.success(f"Card ready in {time.time() - start_time:.1f} seconds ({outcome.origin})")
        st.rerun()

with col2:
    st.subheader("How It Works")
    st.markdown("""
    1. **Known legends** come from a hand-written deck
    2. **Everyone else** gets roasted live by Gemini
    3. **Try Again** skips the deck and the cache for a fresh roast
    """)

    if st.session_state.generation_count > 0:
        st.metric("Cards Generated", st.session_state.generation_count)

if st.session_state.outcome:
    st.divider()

    outcome = st.session_state.outcome
    card = outcome.card
    archetype = card.archetype

    col_preview, col_details = st.columns([2, 1])

    with col_preview:
        st.markdown(f"### {archetype.emoji} {archetype.name}")
        st.caption(f"{archetype.stage} · {archetype.element} · weak to {archetype.weakness}")

        if card.archetypeImage:
            try:
                st.image(image_source(card.archetypeImage), use_container_width=True)
            except Exception as e:
                st.warning(f"Could not display card art: {str(e)}")

        st.markdown(f"*{archetype.flavor}*")
        for bullet in card.roastBullets:
            st.markdown(f"- {bullet}")

        for move in card.moves:
            st.markdown(f"**{move.name}** ({'⚡' * move.energyCost}) {move.damage}: {move.effect}")

        st.markdown(f"> {card.bangerQuote}")

    with col_details:
        st.metric("Career Score", card.careerScore)
        st.markdown(f"""
        **Product Sense**: {card.capabilities.productSense}
        **Execution**: {card.capabilities.execution}
        **Leadership**: {card.capabilities.leadership}

        **Verdict**: {card.dreamRoleReaction}
        **Natural Rival**: {card.naturalRival}
        """)

        with st.expander("Gaps and Roadmap"):
            for gap in card.gaps:
                st.markdown(f"- {gap}")
            for phase in card.roadmap:
                st.markdown(f"**Month {phase.month}: {phase.title}**")
                for action in phase.actions:
                    st.markdown(f"  - {action}")

        st.markdown("**Share**")
        st.code(permalink_url(config.PUBLIC_BASE_URL, outcome.cardId))
        st.code(share_url(config.PUBLIC_BASE_URL, card, st.session_state.dream_role))

        card_json = card.model_dump(exclude={"archetypeImage"})
        st.download_button(
            label="Download JSON",
            data=json.dumps(card_json, indent=2, ensure_ascii=False),
            file_name=f"legend_card_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json",
            mime="application/json",
            use_container_width=True
        )
