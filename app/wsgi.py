from app.course_archive import create_app

app = create_app()
