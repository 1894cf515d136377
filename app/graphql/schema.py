import strawberry

from app.graphql.attendance.mutations import AttendanceMutation
from app.graphql.attendance.queries import AttendanceQuery
from app.graphql.auth.mutations import AuthMutation
from app.graphql.auth.queries import AuthQuery
from app.graphql.payments.mutations import PaymentMutation
from app.graphql.payments.queries import PaymentsQuery
from app.graphql.subscriptions.mutations import SubscriptionMutation
from app.graphql.subscriptions.queries import SubscriptionsQuery


@strawberry.type
class Query(AuthQuery, SubscriptionsQuery, PaymentsQuery, AttendanceQuery):
    @strawberry.field
    def hello(self) -> str:
        return "Hello from GraphQL!"


@strawberry.type
class Mutation(AuthMutation, SubscriptionMutation, PaymentMutation, AttendanceMutation):
    pass


schema = strawberry.Schema(query=Query, mutation=Mutation)
