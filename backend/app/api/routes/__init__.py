from . import design_files, design_comments, project_designs

__all__ = ["design_files", "design_comments", "project_designs"]
