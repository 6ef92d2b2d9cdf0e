from datetime import timedelta

from sqlalchemy import DateTime
from sqlmodel import Session

from planner import models
from planner.utils.dates import utcnow

TABLES = (models.User, models.Task, models.TimetableEntry, models.StudySession, models.Reminder,
          models.ProgressRecord)


def test_datetime_columns_are_plain_naive_datetimes():
    for model in TABLES:
        for name, field in model.model_fields.items():
            if 'datetime' not in str(field.annotation):
                continue
            column_type = model.__table__.c[name].type
            assert type(column_type) is DateTime, f'{model.__name__}.{name}'
            assert column_type.timezone is False


def test_naive_utc_values_round_trip(app):
    due = utcnow().replace(microsecond=0) + timedelta(days=1)
    with Session(app.state.context.engine) as session:
        user = models.User(name='Ada', email='ada@example.com', password_hash='x', class_label='12A')
        session.add(user)
        session.commit()
        task = models.Task(user_id=user.id, title='Essay', subject='English', due_date=due)
        session.add(task)
        session.commit()
        session.refresh(task)
        assert task.due_date == due
        assert task.created_at is not None
        assert task.public()['dueDate'] == due.isoformat() + 'Z'
