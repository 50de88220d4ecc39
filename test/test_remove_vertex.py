from navdt.grid import triangulation
from navdt.spatial import geometry

TriangulationGraph=triangulation.TriangulationGraph

def init(boundary,method='bulk',**kw):
    tg=TriangulationGraph(post_check=True,init_method=method)
    tg.init_triangulation(boundary,**kw)
    return tg

def test_remove_vertex_4_ring():
    corners=[(0,0),(0,10),(10,10),(10,0)]
    p=(3,6)
    for method in ['bulk','incremental']:
        tg=init(corners,method=method,vertices=[p])
        assert len(tg.neighbors(p))==4
        tg.delaunay_remove_vertex(p)

        assert tg.num_triangles()==2
        assert tg.num_vertices()==4
        assert tg.num_edges()==5
        diag1=tg.is_connected((0,0),(10,10))
        diag2=tg.is_connected((0,10),(10,0))
        assert diag1!=diag2
        # the chosen diagonal passes the in-circle test over the other one
        for t in tg.triangles:
            other=[c for c in corners if not t.has_point(c)][0]
            assert geometry.in_circle(t.p1,t.p2,t.p3,other)<=0

def test_remove_vertex_5_ring():
    ring=[(0,0),(-3,5),(0,10),(10,10),(10,0)]
    p=(3,6)
    tg=init(ring,vertices=[p])
    tg.delaunay_remove_vertex(p)
    assert tg.num_triangles()==3
    assert tg.num_vertices()==5
    assert tg.num_edges()==7
    assert tg.is_connected((0,0),(-3,5))
    assert not tg.has_vertex(p)
    assert tg.polypoints.num_vertices()==3
    assert tg.polypoints.num_edges()==2

def test_remove_boundary_vertex():
    boundary=[(0,0),(5,0),(10,0),(10,10),(0,10)]
    for method in ['bulk','incremental']:
        tg=init(boundary,method=method)
        tg.delaunay_remove_vertex((5,0))
        assert tg.num_triangles()==2
        assert tg.num_vertices()==4
        assert tg.num_edges()==5
        assert tg.is_connected((0,0),(10,0))

def test_remove_hull_corner():
    tg=init([(0,0),(10,0),(10,10),(0,10)],vertices=[(4,3)])
    before=set(tg.triangles)
    try:
        tg.delaunay_remove_vertex((0,0))
        assert False
    except triangulation.GridException:
        pass
    assert set(tg.triangles)==before

def test_remove_vertex_with_fixed_edge():
    tg=init([(0,0),(10,0),(10,10),(0,10)],vertices=[(4,3)],
            constraints=[((4,3),(10,10))])
    try:
        tg.delaunay_remove_vertex((4,3))
        assert False
    except tg.BadConstraint:
        pass
    tg.unfix_edge( ((4,3),(10,10)) )
    tg.delaunay_remove_vertex((4,3))
    assert tg.num_triangles()==2

def test_remove_missing_vertex():
    tg=init([(0,0),(10,0),(10,10),(0,10)])
    try:
        tg.delaunay_remove_vertex((4,3))
        assert False
    except tg.Missing:
        pass

def test_remove_high_degree_vertex():
    # ring with collinear boundary stretches and cocircular neighbors
    ring=[(0,0),(5,0),(10,0),(10,5),(10,10),(5,10),(0,10),(0,5)]
    tg=init(ring,method='incremental',vertices=[(5,5)])
    tg.delaunay_remove_vertex((5,5))
    assert tg.num_triangles()==6
    assert tg.num_vertices()==8

def test_no_valid_ear():
    tg=init([(0,0),(0,10),(10,10),(10,0)],vertices=[(3,6)])
    n=tg.point_to_node((3,6))
    ring,closed=tg.vertex_ring(n)
    assert closed
    assert tg.find_ear(n,ring,closed) is not None
    # clockwise, every corner is reflex
    assert tg.find_ear(n,ring[::-1],closed) is None

    tg.find_ear=lambda n,ring,closed: None
    try:
        tg.delaunay_remove_vertex((3,6))
        assert False
    except tg.NoValidEar:
        pass
