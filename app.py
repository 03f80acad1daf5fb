import logging

import streamlit as st

from analysis import run_equivalence, run_verification
from cfg_builder import cfg_to_dot
from config import DEFAULT_UNROLL_DEPTH, LOG_FORMAT, LOG_LEVEL
from errors import ProgramSyntaxError
from program_parser import normalize_whitespace

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

SAMPLE_1 = """x := 3;
if (x < 5) {
    y := x + 1;
} else {
    y := x - 1;
}
assert(y > 0);
"""

SAMPLE_2 = """x := 3;
y := x + 1;
"""


def show_verdict(verdict):
    if verdict.holds:
        st.success(f'✅ {verdict.status}')
        for model in verdict.examples:
            st.write('Example assignment:')
            st.json(model)
        return
    st.error(f'❌ {verdict.status}')
    if verdict.diagnostic:
        st.warning(verdict.diagnostic)
    for model in verdict.counterexamples:
        st.json(model)


# UI
st.title('Formal Methods Tool: Verification & Equivalence')
mode = st.sidebar.selectbox('Mode', ['Verification', 'Equivalence'])
unroll = st.sidebar.number_input('Unroll depth', 1, 10, DEFAULT_UNROLL_DEPTH)

if mode == 'Verification':
    code1 = st.text_area('Program to verify:', height=220, value=SAMPLE_1)
    code2 = None
else:
    col1, col2 = st.columns(2)
    code1 = col1.text_area('Program 1:', height=220, value=SAMPLE_2)
    code2 = col2.text_area('Program 2:', height=220, value=SAMPLE_2)

if st.button('Run'):
    with st.spinner('Processing...'):
        try:
            if mode == 'Verification':
                report = run_verification(normalize_whitespace(code1), int(unroll))
                cfgs = [('Program', report.cfg)]
            else:
                report = run_equivalence(normalize_whitespace(code1), normalize_whitespace(code2), int(unroll))
                cfgs = [('Program 1', report.cfg1), ('Program 2', report.cfg2)]
        except ProgramSyntaxError as e:
            st.error(f'Syntax error: {e}')
            st.stop()

        tab1, tab2, tab3, tab4 = st.tabs(['SSA', 'CFG', 'SMT', 'Results'])
        with tab1:
            if mode == 'Verification':
                st.subheader('SSA')
                st.code(report.ssa_text)
                st.subheader('Optimized SSA')
                st.code(report.optimized_ssa_text)
            else:
                ssa1, ssa2 = report.ssa_texts
                st.subheader('SSA Program 1')
                st.code(ssa1)
                st.subheader('SSA Program 2')
                st.code(ssa2)
        with tab2:
            for title, cfg in cfgs:
                st.subheader(f'CFG {title}')
                st.graphviz_chart(cfg_to_dot(cfg).source)
        with tab3:
            st.subheader('SMT-LIB')
            st.code(report.script, language='lisp')
        with tab4:
            show_verdict(report.verdict)
