from edutest.models.roles import Role
from edutest.models.user import User
from edutest.models.test import Test, Question, TestAssignment
from edutest.models.session import TestSession, SessionAnswer

__all__ = ["Role", "User", "Test", "Question", "TestAssignment", "TestSession", "SessionAnswer"]
