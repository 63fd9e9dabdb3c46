from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("courses", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ActivityLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("activity_type", models.CharField(choices=[
                    ("USER_REGISTERED", "User registered"),
                    ("PASSWORD_CHANGED", "Password changed"),
                    ("USER_MANAGEMENT", "User management"),
                    ("COURSE_CREATED", "Course created"),
                    ("COURSE_PUBLISHED", "Course published"),
                    ("COURSE_MANAGEMENT", "Course management"),
                    ("COURSE_APPROVED", "Course approved"),
                    ("ENROLLED", "Enrolled"),
                    ("COURSE_COMPLETED", "Course completed"),
                    ("CERTIFICATE_ISSUED", "Certificate issued"),
                    ("CERTIFICATE_REVOKED", "Certificate revoked"),
                    ("PAYMENT_COMPLETED", "Payment completed"),
                    ("PAYMENT_MANAGEMENT", "Payment management"),
                    ("SUPPORT_TICKET_CREATED", "Support ticket created"),
                    ("TICKET_UPDATED", "Support ticket updated"),
                    ("TICKET_VIEWED", "Support ticket viewed"),
                    ("COURSE_ANNOUNCEMENT_SENT", "Course announcement sent"),
                ], db_index=True, max_length=40)),
                ("description", models.CharField(max_length=500)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="activity_logs", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(choices=[("enrolment", "Enrolment"), ("lesson", "Lesson"), ("announcement", "Announcement"), ("certificate", "Certificate"), ("support", "Support"), ("course", "Course")], max_length=20)),
                ("message", models.CharField(max_length=300)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("read", models.BooleanField(db_index=True, default=False)),
                ("actor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="notifications_actor", to=settings.AUTH_USER_MODEL)),
                ("course", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to="courses.course")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
    ]
