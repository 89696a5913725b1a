import graphene

from tokensale import schema as tokensale_schema


class Query(tokensale_schema.Query, graphene.ObjectType):
    pass


class Mutation(tokensale_schema.Mutation, graphene.ObjectType):
    pass


schema = graphene.Schema(query=Query, mutation=Mutation)
