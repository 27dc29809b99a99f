from blogcore.entities import Comment, CommentUpdate
from blogcore.repository import Repository, RepositoryConfig


class CommentRepository(Repository[Comment, CommentUpdate]):
    def __init__(self):
        super().__init__(
            entity_class=Comment,
            update_class=CommentUpdate,
            table_name="comments",
            config=RepositoryConfig(generated_columns=("seq",)),
        )

    async def find_by_post_id(self, post_id: int) -> list[Comment]:
        """Comments in chronological order; seq breaks timestamp ties"""
        return await (
            self.where("post_id", post_id).order_by("created_at").order_by("seq").get()
        )
