"""Git branch listing tool.

Features:
- List local branches, most recently committed first
- Relative commit times ("4d ago", "2mo from now")
- Custom per-branch properties stored in git config
- Filter branches by age and by name pattern
"""

__version__ = "1.0.0"
