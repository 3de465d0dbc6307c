"""
Courses: the archived training-course records, with their images and documents.
"""
