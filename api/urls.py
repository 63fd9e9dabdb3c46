"""API routes for CourseCompass.

Versioned REST endpoints live under /api/v1/; the OpenAPI schema and the
interactive documentation are served alongside.
"""
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerSplitView,
)
from rest_framework.routers import DefaultRouter

from . import views_accounts, views_admin, views_analytics, views_learning, views_payments
from .views import CategoryViewSet, CourseViewSet, EnrolmentViewSet, LessonViewSet, ReviewViewSet
from .views_support import AdminSupportTicketViewSet, SupportTicketViewSet

router = DefaultRouter()
router.register(r"api/v1/categories", CategoryViewSet, basename="categories")
router.register(r"api/v1/courses", CourseViewSet, basename="courses")
router.register(r"api/v1/lessons", LessonViewSet, basename="lessons")
router.register(r"api/v1/enrolments", EnrolmentViewSet, basename="enrolments")
router.register(r"api/v1/reviews", ReviewViewSet, basename="reviews")
router.register(r"api/v1/certificates", views_learning.CertificateViewSet, basename="certificates")
router.register(r"api/v1/payments", views_payments.PaymentViewSet, basename="payments")
router.register(r"api/v1/support/tickets", SupportTicketViewSet, basename="support-tickets")
router.register(r"api/v1/admin/payment-gateways", views_payments.PaymentGatewayViewSet, basename="payment-gateways")
router.register(r"api/v1/admin/tickets", AdminSupportTicketViewSet, basename="admin-tickets")
router.register(r"api/v1/admin/users", views_admin.AdminUserViewSet, basename="admin-users")
router.register(r"api/v1/admin/courses", views_admin.AdminCourseViewSet, basename="admin-courses")
router.register(r"api/v1/admin/payments", views_admin.AdminPaymentViewSet, basename="admin-payments")
router.register(r"api/v1/admin/activity", views_admin.ActivityLogViewSet, basename="admin-activity")

urlpatterns = [
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerSplitView.as_view(url_name="schema"), name="swagger-ui"),
    path("redoc/", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    # Accounts
    path("api/v1/auth/register/", views_accounts.register, name="auth-register"),
    path("api/v1/auth/login/", views_accounts.login_view, name="auth-login"),
    path("api/v1/auth/logout/", views_accounts.logout_view, name="auth-logout"),
    path("api/v1/auth/me/", views_accounts.me, name="auth-me"),
    path("api/v1/auth/change-password/", views_accounts.change_password, name="auth-change-password"),
    # Learning (verify must precede the certificates router prefix)
    path("api/v1/progress/", views_learning.progress_update, name="progress-update"),
    path("api/v1/dashboard/", views_learning.dashboard, name="student-dashboard"),
    path("api/v1/certificates/verify/", views_learning.certificate_verify, name="certificate-verify"),
    # Cart and checkout
    path("api/v1/cart/", views_payments.cart_view, name="cart"),
    path("api/v1/cart/load/", views_payments.cart_load, name="cart-load"),
    path("api/v1/cart/<int:course_id>/", views_payments.cart_item, name="cart-item"),
    path("api/v1/checkout/", views_payments.checkout, name="checkout"),
    path("api/v1/checkout/confirm/", views_payments.checkout_confirm, name="checkout-confirm"),
    path("api/v1/instructor/revenue/", views_payments.instructor_revenue, name="instructor-revenue"),
    path("api/v1/instructor/analytics/", views_analytics.instructor_analytics, name="instructor-analytics"),
    path(
        "api/v1/instructor/courses/<int:course_id>/analytics/",
        views_analytics.course_analytics,
        name="instructor-course-analytics",
    ),
    path("api/v1/instructor/engagement/", views_analytics.engagement, name="instructor-engagement"),
    path("api/v1/instructor/students/", views_analytics.student_roster, name="instructor-students"),
    path("api/v1/admin/overview/", views_admin.overview, name="admin-overview"),
    path("", include(router.urls)),
]
