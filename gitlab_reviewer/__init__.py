"""
AI-Powered GitLab Merge Request Reviewer

A small webhook service that reviews GitLab merge requests with an LLM
and posts the feedback back to the merge request as a note.
"""

__version__ = "1.0.0"
__author__ = "GitLab MR Reviewer Team"
