"""Static metadata describing ExamQt."""

APP_NAME = "ExamQt"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "ExamQt runs timed, optionally proctored exams. Learners take the exam in the browser; "
    "the invigilator console follows every live attempt and shows the scored review once it is submitted."
)

HELP_TEXT = (
    "Exams are loaded from a plain-text file (set EXAMQT_EXAM_FILE to use your own). "
    "A file starts with a test header followed by question blocks separated by '---':\n\n"
    "TEST: t1\nTITLE: Weekly Quiz\nTIMELIMIT: 15\nPASSING: 60\nPROCTORING: yes\n\n"
    "---\n\n"
    "ID: q1\nTYPE: multiple-choice\nQ: What is $2 + 2$?\n"
    "A: 3\nB: 4\nC: 5\nCORRECT: B\nDIFFICULTY: easy\nPOINTS: 1\n"
    "EXPLANATION: Basic arithmetic."
)
