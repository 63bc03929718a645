"""
Patient Actor Studio

Backend for simulated patient interview training: instructors configure
patient actor personas, students interview them over chat, instructors
review and grade the submitted transcripts.
"""

__version__ = "0.1.0"
