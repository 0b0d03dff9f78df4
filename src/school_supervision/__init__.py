"""
School Supervision Toolkit

Record keeping for school supervisors: permission-scoped views over teachers
and evaluation reports, score aggregation, syllabus progress tracking,
document exports and JSON backups.
"""

__version__ = "0.1.0"
